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
from typing import List

import ansible_task_compiler.logger as logger


ansible_cfg_file = "ansible.cfg"

project_markers = [
    ansible_cfg_file,
    "site.yml",
    "site.yaml",
    "group_vars",
    "host_vars",
    "inventory",
    "playbooks",
]

role_content_dirs = ["tasks", "defaults", "vars"]

main_playbook_name = "site"


def is_yaml_file(path: str) -> bool:
    _, ext = os.path.splitext(path)
    return ext in [".yml", ".yaml"]


def cut_extension(path: str) -> str:
    base, _ = os.path.splitext(path)
    return base


def is_main_playbook(path: str) -> bool:
    return cut_extension(os.path.basename(path)) == main_playbook_name


def has_role_contents(path: str) -> bool:
    """Checks if there is any "roles/<name>/{tasks,defaults,vars}" in the directory."""
    roles_dir = os.path.join(path, "roles")
    if not os.path.isdir(roles_dir):
        return False
    for name in sorted(os.listdir(roles_dir)):
        for content_dir in role_content_dirs:
            if os.path.isdir(os.path.join(roles_dir, name, content_dir)):
                return True
    return False


def is_ansible_project(path: str) -> bool:
    for marker in project_markers:
        if os.path.exists(os.path.join(path, marker)):
            return True
    return has_role_contents(path)


def find_project_roots(root: str) -> List[str]:
    """Finds the directories of the projects under the root.

    A directory detected as a project is not searched any further, so
    nested projects are loaded as a part of their enclosing project.
    """
    roots = []
    for dirpath, dirnames, _ in os.walk(root):
        dirnames.sort()
        if is_ansible_project(dirpath):
            logger.debug("found a project at {}".format(dirpath))
            roots.append(dirpath)
            dirnames[:] = []
    return roots


def find_playbook_paths(project_path: str) -> List[str]:
    """Returns the YAML files directly under the project directory.

    Not all of them are playbooks; the loader skips the others.
    """
    if not os.path.isdir(project_path):
        return []
    return [os.path.join(project_path, f) for f in sorted(os.listdir(project_path)) if is_yaml_file(f) and os.path.isfile(os.path.join(project_path, f))]
