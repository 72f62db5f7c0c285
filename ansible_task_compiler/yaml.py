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

from contextvars import ContextVar
from ruamel.yaml import YAML


# round-trip mode keeps the line/column info (`.lc`) of every mapping and
# sequence, which is used to compute the provenance of the loaded entities
_yaml: ContextVar[YAML] = ContextVar("yaml")


def _get_yaml() -> YAML:
    yaml = _yaml.get(None)
    if yaml is None:
        yaml = YAML(typ="rt", pure=True)
        yaml.allow_duplicate_keys = True
        _yaml.set(yaml)
    return yaml


def load(stream: any):
    return _get_yaml().load(stream)


def load_file(path: str):
    with open(path, "r") as file:
        return load(file)
