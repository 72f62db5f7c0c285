# -*- mode:python; coding:utf-8 -*-

# Copyright (c) 2022 IBM Corp. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
import weakref
from dataclasses import dataclass, field
from typing import List, Optional

import jsonpickle
from ansible.module_utils.parsing.convert_bool import boolean

import ansible_task_compiler.logger as logger
from .exceptions import (
    CompileError,
    CyclicDependencyError,
    IncludeTargetLoadError,
    TemplateRenderError,
)
from .metadata import Metadata
from .templar import Templar, default_templar, is_template
from .variable_resolver import (
    Variables,
    VariableResolver,
    default_variable_resolver,
)


builtin_prefix = "ansible.builtin."

include_tasks_action = "include_tasks"
import_tasks_action = "import_tasks"
legacy_include_action = "include"
include_role_action = "include_role"
import_role_action = "import_role"
import_playbook_action = "import_playbook"
include_playbook_action = "include_playbook"


def with_builtin_prefix(*actions: str) -> List[str]:
    """Returns the actions followed by their "ansible.builtin." forms."""
    return list(actions) + [builtin_prefix + action for action in actions]


task_include_actions = with_builtin_prefix(include_tasks_action, import_tasks_action, legacy_include_action)
role_include_actions = with_builtin_prefix(include_role_action, import_role_action)
playbook_import_actions = with_builtin_prefix(import_playbook_action, include_playbook_action, legacy_include_action)

task_block_keys = ["block", "rescue", "always"]

task_keywords = set(
    task_block_keys
    + [
        "name",
        "vars",
        "when",
        "tags",
        "register",
        "notify",
        "listen",
        "loop",
        "loop_control",
        "until",
        "retries",
        "delay",
        "become",
        "become_user",
        "become_method",
        "become_flags",
        "become_exe",
        "delegate_to",
        "delegate_facts",
        "run_once",
        "ignore_errors",
        "ignore_unreachable",
        "changed_when",
        "failed_when",
        "environment",
        "no_log",
        "check_mode",
        "diff",
        "any_errors_fatal",
        "async",
        "poll",
        "args",
        "module_defaults",
        "collections",
        "connection",
        "remote_user",
        "port",
        "throttle",
        "timeout",
        "debugger",
    ]
)


def _ref(obj):
    return weakref.ref(obj) if obj is not None else None


def _deref(ref):
    return ref() if ref is not None else None


class JSONSerializable(object):
    def to_json(self):
        return jsonpickle.encode(self, make_refs=False, unpicklable=False)


class Module(dict):
    """Rendered parameters of a task action."""

    def to_string_map(self) -> dict:
        return {k: v for k, v in self.items() if isinstance(v, str)}


class Tasks(list):
    def compile(self) -> "Tasks":
        """Flattens this task list; each task is compiled recursively in order."""
        res = Tasks()
        for task in self:
            res.extend(task.compile())
        return res


@dataclass
class LoadRoleOptions(object):
    """Selects, by file base-name, the entry point files of a role."""

    tasks_file: str = ""
    defaults_file: str = ""
    vars_file: str = ""
    public: Optional[bool] = None

    def with_defaults(self) -> "LoadRoleOptions":
        return LoadRoleOptions(
            tasks_file=_selector(self.tasks_file),
            defaults_file=_selector(self.defaults_file),
            vars_file=_selector(self.vars_file),
            public=self.public,
        )


def _selector(name: str) -> str:
    # `tasks_from: install.yml` and `tasks_from: install` select the same file
    if not name:
        return "main"
    base, ext = os.path.splitext(name)
    if ext in [".yml", ".yaml"]:
        return base
    return name


@dataclass
class TaskIncludeModule(object):
    """Parameters of "include_tasks", "import_tasks" and "include"."""

    file: str = ""

    @classmethod
    def from_module(cls, module: dict):
        file = module.get("file", "")
        return cls(file=file if isinstance(file, str) else "")


@dataclass
class RoleIncludeModule(object):
    """Parameters of "include_role" and "import_role"."""

    name: str = ""
    tasks_from: str = ""
    defaults_from: str = ""
    vars_from: str = ""
    public: bool = False

    @classmethod
    def from_module(cls, module: dict):
        def _str(key):
            val = module.get(key, "")
            return val if isinstance(val, str) else ""

        return cls(
            name=_str("name"),
            tasks_from=_str("tasks_from"),
            defaults_from=_str("defaults_from"),
            vars_from=_str("vars_from"),
            public=boolean(module.get("public", False), strict=False),
        )

    def to_options(self) -> LoadRoleOptions:
        return LoadRoleOptions(
            tasks_file=self.tasks_from,
            defaults_file=self.defaults_from,
            vars_file=self.vars_from,
            public=self.public,
        )


@dataclass(eq=False)
class Task(object):
    """A single task of a play, a role or a task file.

    A task is either a block (it has children in "block", "rescue" or
    "always"), an include of a task file, an include of a role, or a leaf
    which calls a module. `compile()` expands the first three forms into the
    leaf tasks which would actually run, in execution order.

    `role`, `play` and `parent` are weak back references; the referred
    entities are owned by the DataLoader which loaded them.
    """

    name: str = ""
    block: Tasks = field(default_factory=Tasks)
    rescue: Tasks = field(default_factory=Tasks)
    always: Tasks = field(default_factory=Tasks)
    variables: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)
    metadata: Metadata = field(default_factory=Metadata)

    loader: object = field(default=None, repr=False)
    templar: Templar = field(default=None, repr=False)
    variable_resolver: VariableResolver = field(default=None, repr=False)

    _role_ref: Optional[weakref.ref] = field(default=None, repr=False)
    _play_ref: Optional[weakref.ref] = field(default=None, repr=False)
    _parent_ref: Optional[weakref.ref] = field(default=None, repr=False)
    _cached_vars: Optional[Variables] = field(default=None, repr=False)

    @property
    def role(self) -> Optional["Role"]:
        return _deref(self._role_ref)

    @role.setter
    def role(self, value: Optional["Role"]):
        self._role_ref = _ref(value)

    @property
    def play(self) -> Optional["Play"]:
        role = self.role
        if role is not None and role.play is not None:
            return role.play
        return _deref(self._play_ref)

    @play.setter
    def play(self, value: Optional["Play"]):
        self._play_ref = _ref(value)

    @property
    def parent(self) -> Optional["Task"]:
        """The enclosing block or the including task; used only for provenance."""
        return _deref(self._parent_ref)

    @parent.setter
    def parent(self, value: Optional["Task"]):
        self._parent_ref = _ref(value)

    def update_parent(self, parent: "Task"):
        self.parent = parent
        self.metadata.parent = parent.metadata

    @property
    def children(self) -> Tasks:
        return Tasks(self.block + self.rescue + self.always)

    @property
    def action(self) -> str:
        for key in ["action", "local_action"]:
            val = self.raw.get(key, None)
            if isinstance(val, str) and val.strip():
                return val.split()[0]
            if isinstance(val, dict):
                module = val.get("module", "")
                if module:
                    return module
        for key in self.raw:
            if not isinstance(key, str):
                continue
            if key in task_keywords or key.startswith("with_") or key in ["action", "local_action"]:
                continue
            return key
        return ""

    @property
    def is_block(self) -> bool:
        return len(self.block) > 0 or len(self.rescue) > 0 or len(self.always) > 0

    @property
    def is_task_include(self) -> bool:
        return self._action_one_of(task_include_actions)

    @property
    def is_role_include(self) -> bool:
        return self._action_one_of(role_include_actions)

    def _action_one_of(self, actions: List[str]) -> bool:
        return any(action in self.raw for action in actions)

    def get_vars(self) -> Variables:
        # vars of enclosing blocks and including tasks apply to this task too
        res = Variables()
        parent = self.parent
        if parent is not None:
            res.merge(parent.get_vars())
        res.merge(self.variables)
        return res

    @property
    def cached_vars(self) -> Variables:
        if self._cached_vars is None:
            resolver = self.variable_resolver or default_variable_resolver
            self._cached_vars = resolver.get_vars(self.play, self)
        return self._cached_vars

    def module(self, module_name: str) -> Optional[Module]:
        """Returns the rendered parameters of the action `module_name`.

        None is returned when the task does not call the action with a
        mapping of parameters, or when a parameter cannot be rendered.
        """
        params = self.raw.get(module_name, None)
        if not isinstance(params, dict):
            return None

        module = Module()
        for key, param in params.items():
            try:
                module[key] = self._render(param, self.cached_vars)
            except TemplateRenderError as e:
                logger.warning('failed to render the parameter "{}" of "{}" in the task "{}": {}'.format(key, module_name, self.name, e))
                return None
        return module

    def free_form(self, module_name: str) -> Optional[str]:
        """Returns the rendered string parameter of a free-form action such as
        `include_tasks: file.yml`, otherwise None."""
        param = self.raw.get(module_name, None)
        if not isinstance(param, str):
            return None
        try:
            rendered = self._render(param, self.cached_vars)
        except TemplateRenderError as e:
            logger.warning('failed to render the free-form parameter of "{}" in the task "{}": {}'.format(module_name, self.name, e))
            return None
        if not isinstance(rendered, str):
            return None
        return rendered

    def _render(self, value, variables):
        if isinstance(value, str):
            templar = self.templar or default_templar
            return templar.evaluate(value, variables)
        if isinstance(value, list):
            return [self._render(v, variables) for v in value]
        if isinstance(value, dict):
            return {k: self._render(v, variables) for k, v in value.items()}
        if value is not None and not isinstance(value, (bool, int, float)):
            logger.debug("unsupported parameter type {}; leave it as is".format(type(value).__name__))
        return value

    def _include_params(self, actions: List[str], free_form_key: str) -> dict:
        for action in actions:
            if action not in self.raw:
                continue
            val = self.free_form(action)
            if val is not None:
                return {free_form_key: val}
            module = self.module(action)
            if module is not None:
                return module
        return {}

    def compile(self) -> Tasks:
        """Expands this task into the leaf tasks which run in its place."""
        if self.is_block:
            return self._compile_block()
        if self.is_task_include:
            return self._compile_task_include()
        if self.is_role_include:
            return self._compile_role_include()
        return Tasks([self])

    def _compile_block(self) -> Tasks:
        # children are linked to this block when they are decoded
        return self.children.compile()

    def _compile_task_include(self) -> Tasks:
        module = TaskIncludeModule.from_module(self._include_params(task_include_actions, "file"))
        if not module.file:
            raise IncludeTargetLoadError('cannot resolve the tasks file included by the task "{}"'.format(self.name), self.metadata.chain())
        if self.loader is None:
            raise IncludeTargetLoadError('cannot load "{}"; the task "{}" has no loader'.format(module.file, self.name), self.metadata.chain())

        # relative to the file of the including task, not to the role or the project
        tasks_file = os.path.normpath(os.path.join(os.path.dirname(self.metadata.path), module.file))
        if tasks_file in [m.path for m in self.metadata.ancestors()]:
            raise CyclicDependencyError('the tasks file "{}" includes itself'.format(tasks_file), self.metadata.chain())

        try:
            loaded = self.loader.load_tasks(self.metadata, self.role, tasks_file, play=self.play)
        except CompileError as e:
            raise IncludeTargetLoadError('failed to load the tasks file included by the task "{}": {}'.format(self.name, e.message), self.metadata.chain()) from e

        res = Tasks()
        for task in loaded:
            task.parent = self
            res.extend(task.compile())
        return res

    def _compile_role_include(self) -> Tasks:
        module = RoleIncludeModule.from_module(self._include_params(role_include_actions, "name"))
        if not module.name:
            raise IncludeTargetLoadError('cannot resolve the role included by the task "{}"'.format(self.name), self.metadata.chain())
        if self.loader is None:
            raise IncludeTargetLoadError('cannot load the role "{}"; the task "{}" has no loader'.format(module.name, self.name), self.metadata.chain())

        try:
            role = self.loader.load_role_with_options(self.metadata, self.play, module.name, module.to_options())
        except CompileError as e:
            raise IncludeTargetLoadError('failed to load the role included by the task "{}": {}'.format(self.name, e.message), self.metadata.chain()) from e

        # the same role may be included with another tasks_from; only a tasks
        # file which is already being compiled makes a cycle
        ancestor_paths = [m.path for m in self.metadata.ancestors()]
        for tasks_file in sorted({t.metadata.path for t in role.tasks}):
            if tasks_file in ancestor_paths:
                raise CyclicDependencyError('the role "{}" includes its tasks file "{}" again'.format(module.name, tasks_file), self.metadata.chain())

        for r in role.get_all_deps() + [role]:
            for task in r.tasks:
                task.parent = self
        return role.compile()


@dataclass(eq=False)
class RoleDefinition(object):
    """A role reference in a play or in role metadata.

    Both `- web` and `- role: web` normalize to the same definition.
    """

    name: str = ""
    variables: dict = field(default_factory=dict)
    metadata: Metadata = field(default_factory=Metadata)


@dataclass(eq=False)
class RoleMeta(object):
    dependencies: List[RoleDefinition] = field(default_factory=list)
    metadata: Metadata = field(default_factory=Metadata)


@dataclass(eq=False)
class Role(object):
    name: str = ""
    path: str = ""
    public: bool = True
    metadata: Metadata = field(default_factory=Metadata)

    tasks: Tasks = field(default_factory=Tasks)
    defaults: Variables = field(default_factory=Variables)
    variables: Variables = field(default_factory=Variables)
    # inline vars from the role definition in a play
    params: dict = field(default_factory=dict)
    meta: RoleMeta = field(default_factory=RoleMeta)

    loader: object = field(default=None, repr=False)

    _play_ref: Optional[weakref.ref] = field(default=None, repr=False)
    _direct_dep_refs: Optional[list] = field(default=None, repr=False)
    _all_deps: Optional[list] = field(default=None, repr=False)

    @property
    def play(self) -> Optional["Play"]:
        return _deref(self._play_ref)

    @play.setter
    def play(self, value: Optional["Play"]):
        self._play_ref = _ref(value)

    def is_public(self) -> bool:
        return self.public

    @property
    def direct_deps(self) -> List["Role"]:
        if self._direct_dep_refs is None:
            self._load_deps()
        return [dep() for dep in self._direct_dep_refs]

    def _load_deps(self):
        refs = []
        for dep in self.meta.dependencies:
            if self.loader is None:
                raise IncludeTargetLoadError('cannot load the dependency "{}" of the role "{}"; no loader'.format(dep.name, self.name), self.metadata.chain())
            dep_role = self.loader.load_role(self.meta.metadata, self.play, dep.name)
            dep_role.params = dep.variables
            refs.append(weakref.ref(dep_role))
        self._direct_dep_refs = refs

    def _check_cycle(self, resolving: tuple) -> tuple:
        if self.name in resolving:
            path = " -> ".join(list(resolving) + [self.name])
            raise CyclicDependencyError('cyclic role dependency: {}'.format(path), self.metadata.chain())
        return resolving + (self.name,)

    def get_all_deps(self, _resolving: tuple = ()) -> List["Role"]:
        """Returns the transitive dependencies, each one after its own dependencies."""
        if self._all_deps is not None:
            return self._all_deps
        resolving = self._check_cycle(_resolving)
        all_deps = []
        for dep in self.direct_deps:
            all_deps.extend(dep.get_all_deps(resolving))
            all_deps.append(dep)
        self._all_deps = all_deps
        return all_deps

    def load_default_vars(self, _resolving: tuple = ()) -> Variables:
        resolving = self._check_cycle(_resolving)
        res = Variables()
        for dep in self.direct_deps:
            res.merge(dep.load_default_vars(resolving))
        return res.merge(self.defaults)

    def compile(self, _resolving: tuple = ()) -> Tasks:
        """Returns the tasks of all dependencies, depth-first, followed by
        the compiled tasks of this role."""
        resolving = self._check_cycle(_resolving)
        res = Tasks()
        for dep in self.direct_deps:
            res.extend(dep.compile(resolving))
        res.extend(self.tasks.compile())
        return res


@dataclass(eq=False)
class Play(object):
    name: str = ""
    hosts: str = ""
    role_definitions: List[RoleDefinition] = field(default_factory=list)
    pre_tasks: Tasks = field(default_factory=Tasks)
    tasks: Tasks = field(default_factory=Tasks)
    post_tasks: Tasks = field(default_factory=Tasks)
    variables: dict = field(default_factory=dict)
    vars_files: list = field(default_factory=list)
    raw: dict = field(default_factory=dict)
    metadata: Metadata = field(default_factory=Metadata)

    roles: List[Role] = field(default_factory=list)
    loader: object = field(default=None, repr=False)

    # vars_files merged in order; loaded once by the VariableResolver
    _vars_files_vars: Optional[Variables] = field(default=None, repr=False)

    @property
    def path(self) -> str:
        return self.metadata.path

    def list_tasks(self) -> Tasks:
        return Tasks(self.pre_tasks + self.tasks + self.post_tasks)

    def update_metadata(self, parent: Optional[Metadata], path: str):
        self.metadata.parent = parent
        self.metadata.path = path
        for role_def in self.role_definitions:
            role_def.metadata.path = path
            role_def.metadata.parent = self.metadata
        for task in self.list_tasks():
            task.metadata.parent = self.metadata

    def import_playbook_path(self) -> str:
        for action in playbook_import_actions:
            val = self.raw.get(action, None)
            if isinstance(val, str) and val:
                return val
        return ""

    def compile(self) -> Tasks:
        """Returns the compiled pre_tasks, tasks and post_tasks followed by
        the compiled roles. An imported playbook replaces all of them."""
        playbook_path = self.import_playbook_path()
        if playbook_path:
            return self._compile_imported_playbook(playbook_path)

        res = self.list_tasks().compile()
        for role in self.roles:
            res.extend(role.compile())
        return res

    def _compile_imported_playbook(self, playbook_path: str) -> Tasks:
        if self.loader is None:
            raise IncludeTargetLoadError('cannot import the playbook "{}"; the play has no loader'.format(playbook_path), self.metadata.chain())
        if is_template(playbook_path):
            resolver = self.loader.variable_resolver
            try:
                playbook_path = self.loader.templar.evaluate(playbook_path, resolver.get_vars(self))
            except TemplateRenderError as e:
                raise IncludeTargetLoadError(e.message, self.metadata.chain()) from e

        fullpath = self.loader.resolve_playbook_path(playbook_path, os.path.dirname(self.path))
        if fullpath in [m.path for m in self.metadata.ancestors()]:
            raise CyclicDependencyError('the playbook "{}" imports itself'.format(fullpath), self.metadata.chain())
        try:
            imported = self.loader.load_playbook(self.metadata, fullpath)
        except CompileError as e:
            raise IncludeTargetLoadError('failed to import the playbook "{}": {}'.format(playbook_path, e.message), self.metadata.chain()) from e
        return imported.compile()


class Playbook(list):
    def __init__(self, plays=None, path: str = ""):
        super().__init__(plays or [])
        self.path = path

    def compile(self) -> Tasks:
        res = Tasks()
        for play in self:
            res.extend(play.compile())
        return res


@dataclass(eq=False)
class Project(object):
    path: str = ""
    cfg: object = None
    main_playbook: Optional[Playbook] = None
    playbooks: List[Playbook] = field(default_factory=list)
    loader: object = field(default=None, repr=False)

    def list_tasks(self) -> Tasks:
        """Returns the compiled tasks of the main playbook (site.yml) if the
        project has one, otherwise those of every playbook in order."""
        if self.main_playbook is not None:
            return self.main_playbook.compile()
        res = Tasks()
        for playbook in self.playbooks:
            res.extend(playbook.compile())
        return res


def to_plain(value):
    """Converts a decoded document value into plain dict/list/scalar values."""
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


@dataclass
class TaskRecord(JSONSerializable):
    """Serializable summary of a compiled task."""

    name: str = ""
    action: str = ""
    module_options: object = None
    defined_in: str = ""
    line_range: list = field(default_factory=list)
    role: str = ""
    included_by: list = field(default_factory=list)

    @classmethod
    def from_task(cls, task: Task):
        action = task.action
        role = task.role
        included_by = []
        parent = task.parent
        while parent is not None:
            included_by.append(parent.name)
            parent = parent.parent
        return cls(
            name=task.name,
            action=action,
            module_options=to_plain(task.raw.get(action, None)),
            defined_in=task.metadata.path,
            line_range=[task.metadata.range.start_line, task.metadata.range.end_line],
            role=role.name if role is not None else "",
            included_by=included_by,
        )
