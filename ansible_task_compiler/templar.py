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

from jinja2 import Environment, StrictUndefined, TemplateError
from ansible.module_utils.parsing.convert_bool import boolean

from .exceptions import TemplateRenderError


# a variable may refer to another templated variable,
# so a rendered result is rendered again up to this depth
default_max_depth = 10


def is_template(txt) -> bool:
    if not isinstance(txt, str):
        return False
    return "{{" in txt or "{%" in txt


class Templar(object):
    def __init__(self, max_depth: int = default_max_depth):
        self.max_depth = max_depth
        self.environment = Environment(undefined=StrictUndefined, keep_trailing_newline=True)
        self.environment.filters["bool"] = lambda v: boolean(v, strict=False)

    def evaluate(self, template: str, variables: dict) -> str:
        rendered = template
        for _ in range(self.max_depth):
            if not is_template(rendered):
                break
            try:
                new_rendered = self.environment.from_string(rendered).render(variables or {})
            except TemplateError as e:
                raise TemplateRenderError('failed to render the template "{}": {}'.format(template, e)) from e
            if new_rendered == rendered:
                break
            rendered = new_rendered
        return rendered


default_templar = Templar()
