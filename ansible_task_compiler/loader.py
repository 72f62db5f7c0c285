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
from typing import List, Optional

from ruamel.yaml.error import YAMLError

import ansible_task_compiler.logger as logger
import ansible_task_compiler.yaml as atcyaml
from .exceptions import (
    PlaybookFormatError,
    PlaybookReadError,
    RoleNotFoundError,
    TaskDecodeError,
    VarsFileReadError,
)
from .finder import cut_extension, is_yaml_file
from .metadata import Metadata
from .model_loader import load_playbook_data, load_role_meta, load_tasks_data
from .models import LoadRoleOptions, Playbook, Role, RoleMeta, Task, Tasks
from .templar import Templar
from .variable_resolver import Variables, VariableResolver


class DataLoader(object):
    """Loads roles, task files and playbooks of a project on demand.

    The loader owns every entity it creates; back references between
    entities are weak, so the loader must live as long as they are used.
    `role_cache` maps a role name to its resolved directory only. The role
    files are read again on every load because the selected entry point
    files (`tasks_from` etc.) can differ between loads.

    The loader is not safe for concurrent use.
    """

    def __init__(
        self,
        root: str = ".",
        roles_paths: List[str] = None,
        templar: Templar = None,
        variable_resolver: VariableResolver = None,
    ):
        self.root = os.path.abspath(root)
        self.roles_paths = [p for p in (roles_paths or []) if p]
        self.templar = templar or Templar()
        self.variable_resolver = variable_resolver or VariableResolver()

        self.role_cache = {}
        self.entities = []

    def _own(self, entity):
        self.entities.append(entity)
        return entity

    def resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self.root, path))

    def resolve_playbook_path(self, path: str, importer_dir: str = "") -> str:
        """An imported playbook is searched in the project root, then in the
        directory of the importing playbook."""
        fullpath = self.resolve_path(path)
        if not os.path.exists(fullpath) and importer_dir and not os.path.isabs(path):
            candidate = os.path.normpath(os.path.join(importer_dir, path))
            if os.path.exists(candidate):
                return candidate
        return fullpath

    def resolve_role_path(self, name: str) -> str:
        candidates = [os.path.join(self.root, "roles", name)]
        candidates.extend([os.path.join(p, name) for p in self.roles_paths])
        for candidate in candidates:
            if os.path.isdir(candidate):
                return os.path.normpath(candidate)
        return ""

    def load_role(self, parent: Optional[Metadata], play, role_name: str) -> Role:
        return self.load_role_with_options(parent, play, role_name, LoadRoleOptions())

    def load_role_with_options(self, parent: Optional[Metadata], play, role_name: str, options: LoadRoleOptions = None) -> Role:
        opts = (options or LoadRoleOptions()).with_defaults()

        role_path = self.role_cache.get(role_name, "")
        if role_path:
            logger.debug('use the cached path "{}" for the role "{}"'.format(role_path, role_name))
        else:
            role_path = self.resolve_role_path(role_name)
        if not role_path:
            raise RoleNotFoundError(role_name, parent.chain() if parent is not None else [])

        role = self._own(Role(name=role_name, path=role_path, loader=self))
        role.metadata = Metadata(path=role_path)
        role.metadata.parent = parent
        role.play = play
        if opts.public is not None:
            role.public = opts.public

        for dirpath, dirnames, filenames in os.walk(role_path):
            dirnames.sort()
            for filename in sorted(filenames):
                if not is_yaml_file(filename):
                    continue
                fpath = os.path.join(dirpath, filename)
                relative = os.path.relpath(fpath, role_path).replace(os.sep, "/")
                section, _, rest = relative.partition("/")
                if not rest:
                    continue
                selector = cut_extension(rest)
                if section == "tasks" and selector == opts.tasks_file:
                    role.tasks.extend(self.load_tasks(role.metadata, role, fpath))
                elif section == "defaults" and selector == opts.defaults_file:
                    role.defaults.merge(self._load_role_vars(fpath))
                elif section == "vars" and selector == opts.vars_file:
                    role.variables.merge(self._load_role_vars(fpath))
                elif section == "meta" and selector == "main":
                    meta = self._load_role_meta(fpath)
                    if meta is not None:
                        meta.metadata.parent = role.metadata
                        role.meta = meta

        self.role_cache[role_name] = role_path
        return role

    def _load_role_vars(self, path: str) -> Variables:
        try:
            data = atcyaml.load_file(path)
        except (OSError, YAMLError) as e:
            logger.warning("failed to load the variables file {}; skip this: {}".format(path, e))
            return Variables()
        if data is None:
            return Variables()
        if not isinstance(data, dict):
            logger.warning("the variables file {} is not a dict; skip this".format(path))
            return Variables()
        return Variables(data)

    def _load_role_meta(self, path: str) -> Optional[RoleMeta]:
        try:
            meta = load_role_meta(atcyaml.load_file(path))
        except (OSError, YAMLError, ValueError) as e:
            logger.warning("failed to load the role metadata {}; skip this: {}".format(path, e))
            return None
        meta.metadata.path = path
        self._own(meta)
        return meta

    def load_tasks(self, parent: Optional[Metadata], role: Optional[Role], path: str, play=None) -> Tasks:
        path = self.resolve_path(path)
        try:
            tasks = load_tasks_data(atcyaml.load_file(path))
        except (OSError, YAMLError, TaskDecodeError) as e:
            raise TaskDecodeError('failed to decode the tasks file "{}": {}'.format(path, e), parent.chain() if parent is not None else []) from e
        for task in tasks:
            task.metadata.parent = parent
            self._stamp_task(task, path, role, play)
        return tasks

    def _stamp_task(self, task: Task, path: str, role: Optional[Role], play):
        # parent links of nested tasks are set when they are decoded
        self._own(task)
        task.metadata.path = path
        task.loader = self
        task.templar = self.templar
        task.variable_resolver = self.variable_resolver
        task.role = role
        task.play = play
        for child in task.children:
            self._stamp_task(child, path, role, play)

    def load_playbook(self, parent: Optional[Metadata], path: str) -> Playbook:
        path = self.resolve_path(path)
        try:
            data = atcyaml.load_file(path)
            playbook = load_playbook_data(data)
        except (YAMLError, PlaybookFormatError) as e:
            # not all YAML files are playbooks
            logger.debug("failed to decode the playbook {}; maybe this is not a playbook: {}".format(path, e))
            return Playbook(path=path)
        except OSError as e:
            raise PlaybookReadError('failed to read the playbook "{}": {}'.format(path, e), parent.chain() if parent is not None else []) from e

        playbook.path = path
        for play in playbook:
            self._own(play)
            play.loader = self
            play.update_metadata(parent, path)
            for task in play.list_tasks():
                self._stamp_task(task, path, None, play)

            roles = []
            for role_def in play.role_definitions:
                role = self.load_role(play.metadata, play, role_def.name)
                role.params = role_def.variables
                roles.append(role)
            play.roles = roles
        return playbook

    def load_play_vars_file(self, play_dir: str, filename: str) -> Variables:
        path = os.path.join(self.resolve_path(play_dir), "vars", filename)
        try:
            data = atcyaml.load_file(path)
        except (OSError, YAMLError) as e:
            raise VarsFileReadError('failed to read the variables file "{}": {}'.format(path, e)) from e
        if data is None:
            return Variables()
        if not isinstance(data, dict):
            raise VarsFileReadError('failed to decode variables from "{}": not a dict but {}'.format(path, type(data).__name__))
        return Variables(data)
