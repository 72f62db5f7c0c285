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
from .config import Config, read_ansible_config
from .finder import find_playbook_paths, find_project_roots, is_main_playbook
from .loader import DataLoader
from .models import Project


class Parser:
    def __init__(self, config: Config = None):
        self.config = config or Config()

    def parse_auto(self, root: str) -> List[Project]:
        """Finds the projects under the root and parses all of their playbooks."""
        projects = []
        for project_path in find_project_roots(root):
            projects.append(self._parse(project_path))
        return projects

    def parse_project(self, root: str, playbook: str) -> Project:
        """Parses the project at the root with the playbook as its entry point."""
        return self._parse(root, [playbook])

    def parse(self, root: str, *playbooks: str) -> List[Project]:
        """Parses the project at the root once per playbook. Without playbooks,
        every playbook directly under the root is parsed into one project."""
        if not playbooks:
            return [self._parse(root)]
        return [self._parse(root, [playbook]) for playbook in playbooks]

    def _parse(self, root: str, playbooks: List[str] = None) -> Project:
        project = self._init_project(root)
        if not playbooks:
            playbooks = find_playbook_paths(project.path)
        self._parse_playbooks(project, playbooks)
        return project

    def _init_project(self, root: str) -> Project:
        try:
            cfg = read_ansible_config(root)
        except ValueError as e:
            raise ValueError(f"failed to read the ansible config: {e}") from e

        roles_paths = list(cfg.roles_path) + list(self.config.default_roles_path or [])
        loader = DataLoader(root, roles_paths=roles_paths)
        return Project(path=loader.root, cfg=cfg, loader=loader)

    def _parse_playbooks(self, project: Project, paths: List[str]):
        for path in paths:
            playbook = project.loader.load_playbook(None, path)
            if not playbook:
                logger.debug("no plays found in {}; skip this".format(path))
                continue
            if is_main_playbook(path):
                project.main_playbook = playbook
            else:
                project.playbooks.append(playbook)
        logger.debug(
            "{} playbooks loaded for the project {} (main playbook: {})".format(
                len(project.playbooks), os.path.basename(project.path), project.main_playbook is not None
            )
        )
