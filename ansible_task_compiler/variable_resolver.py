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

import ansible_task_compiler.logger as logger
from .exceptions import VarsFileReadError
from .templar import is_template


class Variables(dict):
    """String-keyed variable mapping; a merge is right-biased."""

    def merge(self, *sources) -> "Variables":
        for source in sources:
            if source:
                self.update(source)
        return self


class VariableResolver(object):
    """
    Merges the variables visible to a task. The order of precedence is
    (later wins):

      - play->roles->load_default_vars (including role dependencies)
      - task->role->load_default_vars (for roles brought in by include_role)
      - play vars
      - play vars_files (file names that need templating are ignored)
      - play->roles->vars
      - task->role->vars (and the role parameters given in the role definition)
      - task->get_vars (vars of the enclosing blocks/includes and the task itself)

    Host inventory variables, facts and extra vars are not part of this.
    See https://docs.ansible.com/ansible/latest/playbook_guide/playbooks_variables.html#variable-precedence-where-should-i-put-a-variable
    """

    def get_vars(self, play=None, task=None) -> Variables:
        res = Variables()
        role = task.role if task is not None else None

        if play is not None:
            for play_role in play.roles:
                res.merge(play_role.load_default_vars())

        if role is not None:
            res.merge(role.load_default_vars())

        if play is not None:
            res.merge(play.variables)
            res.merge(self._load_vars_files(play))

            for play_role in play.roles:
                res.merge(play_role.variables)

        if task is not None:
            if role is not None:
                res.merge(role.variables, role.params)
            res.merge(task.get_vars())

        return res

    def _load_vars_files(self, play) -> Variables:
        if play._vars_files_vars is None:
            res = Variables()
            for vars_file in play.vars_files:
                res.merge(self._load_vars_file(play, vars_file))
            play._vars_files_vars = res
        return play._vars_files_vars

    def _load_vars_file(self, play, vars_file):
        if not isinstance(vars_file, str):
            raise VarsFileReadError("vars file name must be a string, but got {}".format(type(vars_file).__name__), play.metadata.chain())
        if is_template(vars_file):
            logger.debug('skip the vars file "{}" because its name needs to be templated'.format(vars_file))
            return None
        if play.loader is None:
            raise VarsFileReadError('cannot load the vars file "{}"; the play has no loader'.format(vars_file), play.metadata.chain())
        try:
            return play.loader.load_play_vars_file(os.path.dirname(play.path), vars_file)
        except VarsFileReadError as e:
            if not e.chain:
                e.chain = play.metadata.chain()
            raise


default_variable_resolver = VariableResolver()
