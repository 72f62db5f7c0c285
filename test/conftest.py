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
import textwrap

import pytest


@pytest.fixture
def make_files(tmp_path):
    """Writes {relative path: YAML text} under tmp_path and returns tmp_path."""

    def _make_files(files: dict):
        for relative_path, content in files.items():
            fpath = os.path.join(str(tmp_path), relative_path)
            os.makedirs(os.path.dirname(fpath), exist_ok=True)
            with open(fpath, "w") as file:
                file.write(textwrap.dedent(content))
        return str(tmp_path)

    return _make_files
