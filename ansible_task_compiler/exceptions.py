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

from typing import List


class CompileError(Exception):
    """Base error of the loader and the compiler.

    `chain` is the provenance chain of the entity which caused the error,
    innermost first, e.g. ["roles/web/tasks/main.yml:L4-6", "site.yml:L1-9"].
    """

    def __init__(self, message: str = "", chain: List[str] = None):
        super().__init__(message)
        self.message = message
        self.chain = chain or []

    def __str__(self):
        if not self.chain:
            return self.message
        return "{}\n  include chain:\n    {}".format(self.message, "\n    ".join(self.chain))


class RoleNotFoundError(CompileError):
    def __init__(self, role_name: str = "", chain: List[str] = None):
        super().__init__('role "{}" not found'.format(role_name), chain)
        self.role_name = role_name


class TaskDecodeError(CompileError):
    pass


# not all YAML files are playbooks, so the loader catches this
# and returns an empty playbook instead
class PlaybookFormatError(CompileError):
    pass


class VarsFileReadError(CompileError):
    pass


class TemplateRenderError(CompileError):
    pass


class IncludeTargetLoadError(CompileError):
    pass


class CyclicDependencyError(CompileError):
    pass


class PlaybookReadError(CompileError):
    pass
