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

from .exceptions import PlaybookFormatError, TaskDecodeError
from .metadata import Metadata, item_line, range_from_node
from .models import (
    Play,
    Playbook,
    RoleDefinition,
    RoleMeta,
    Task,
    Tasks,
    playbook_import_actions,
    task_block_keys,
)


def load_task(task_block_dict, line: int = 0) -> Task:
    if not isinstance(task_block_dict, dict):
        raise TaskDecodeError("this task block is not a dict, but {}; maybe this is not a task".format(type(task_block_dict).__name__))

    task = Task()
    task.metadata = Metadata(range=range_from_node(task_block_dict, line))
    task.raw = task_block_dict

    name = task_block_dict.get("name", "")
    task.name = "" if name is None else str(name)

    variables = task_block_dict.get("vars", None)
    if variables is not None:
        if not isinstance(variables, dict):
            raise TaskDecodeError('"vars" of the task "{}" must be a dict, but {}'.format(task.name, type(variables).__name__))
        task.variables = variables

    for key in task_block_keys:
        children_data = task_block_dict.get(key, None)
        if children_data is None:
            continue
        if not isinstance(children_data, list):
            raise TaskDecodeError('"{}" of the task "{}" must be a list, but {}'.format(key, task.name, type(children_data).__name__))
        children = load_tasks_data(children_data)
        for child in children:
            child.update_parent(task)
        setattr(task, key, children)
    return task


def load_tasks_data(data) -> Tasks:
    """Decodes a task list; an empty document is an empty list."""
    if data is None:
        return Tasks()
    if not isinstance(data, list):
        raise TaskDecodeError("task file must be loaded as a list, but got {}".format(type(data).__name__))
    tasks = Tasks()
    for i, task_block_dict in enumerate(data):
        tasks.append(load_task(task_block_dict, item_line(data, i)))
    return tasks


def load_role_definition(role_block, line: int = 0) -> RoleDefinition:
    role_def = RoleDefinition()
    role_def.metadata = Metadata(range=range_from_node(role_block, line))
    # a role can be a string or a dict
    if isinstance(role_block, str):
        role_def.name = role_block
        return role_def
    if not isinstance(role_block, dict):
        raise ValueError("role definition must be a string or a dict, but got {}".format(type(role_block).__name__))
    name = role_block.get("role", "") or role_block.get("name", "")
    if not isinstance(name, str) or not name:
        raise ValueError("role definition must have a role name")
    role_def.name = name
    variables = role_block.get("vars", None)
    if isinstance(variables, dict):
        role_def.variables = variables
    return role_def


def load_role_definitions(data) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("roles must be a list, but got {}".format(type(data).__name__))
    return [load_role_definition(r, item_line(data, i)) for i, r in enumerate(data)]


def load_role_meta(data, line: int = 0) -> RoleMeta:
    meta = RoleMeta()
    meta.metadata = Metadata(range=range_from_node(data, line))
    if data is None:
        return meta
    if not isinstance(data, dict):
        raise ValueError("role metadata must be a dict, but got {}".format(type(data).__name__))
    meta.dependencies = load_role_definitions(data.get("dependencies", None))
    return meta


def load_play(play_block_dict, line: int = 0) -> Play:
    if not isinstance(play_block_dict, dict):
        raise PlaybookFormatError("this play block is not loaded as dict; maybe this is not a playbook")
    data_block = play_block_dict
    if "hosts" not in data_block and not any(k in data_block for k in playbook_import_actions):
        raise PlaybookFormatError('this play block does not have "hosts" nor "import_playbook"; maybe this is not a playbook')

    play = Play()
    play.metadata = Metadata(range=range_from_node(data_block, line))
    play.raw = data_block
    name = data_block.get("name", "")
    play.name = "" if name is None else str(name)
    hosts = data_block.get("hosts", "")
    play.hosts = ",".join(str(h) for h in hosts) if isinstance(hosts, list) else str(hosts or "")

    try:
        play.role_definitions = load_role_definitions(data_block.get("roles", None))
        play.pre_tasks = load_tasks_data(data_block.get("pre_tasks", None))
        play.tasks = load_tasks_data(data_block.get("tasks", None))
        play.post_tasks = load_tasks_data(data_block.get("post_tasks", None))
    except (TaskDecodeError, ValueError) as e:
        raise PlaybookFormatError("failed to load the play: {}".format(e)) from e

    variables = data_block.get("vars", None)
    if variables is not None:
        if not isinstance(variables, dict):
            raise PlaybookFormatError('"vars" of a play must be a dict, but got {}'.format(type(variables).__name__))
        play.variables = variables

    # "var_files" is accepted for compatibility with older projects
    vars_files = data_block.get("vars_files", data_block.get("var_files", None))
    if isinstance(vars_files, str):
        vars_files = [vars_files]
    if vars_files is not None:
        if not isinstance(vars_files, list):
            raise PlaybookFormatError('"vars_files" of a play must be a list, but got {}'.format(type(vars_files).__name__))
        play.vars_files = vars_files
    return play


def load_playbook_data(data) -> Playbook:
    if data is None:
        return Playbook()
    if not isinstance(data, list):
        raise PlaybookFormatError("playbook must be loaded as a list, but got {}".format(type(data).__name__))
    return Playbook([load_play(play_dict, item_line(data, i)) for i, play_dict in enumerate(data)])
