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

from .exceptions import (  # noqa: F401
    CompileError,
    CyclicDependencyError,
    IncludeTargetLoadError,
    PlaybookFormatError,
    PlaybookReadError,
    RoleNotFoundError,
    TaskDecodeError,
    TemplateRenderError,
    VarsFileReadError,
)
from .loader import DataLoader  # noqa: F401
from .models import Module, Play, Playbook, Project, Role, Task, Tasks  # noqa: F401
from .parser import Parser  # noqa: F401
from .variable_resolver import Variables, VariableResolver  # noqa: F401
