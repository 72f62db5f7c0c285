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
import sys
import argparse

from tabulate import tabulate

from ..config import Config
from ..exceptions import CompileError
from ..models import TaskRecord
from ..parser import Parser
import ansible_task_compiler.logger as logger


class ATCCLI:
    args = None

    def __init__(self, argv=None):
        parser = argparse.ArgumentParser(description="list the tasks which an ansible project would run, without running it")
        parser.add_argument("path", help="path to a project directory, or a directory which contains projects")
        parser.add_argument("-p", "--playbook", action="append", help="playbook to use as an entry point (repeatable, relative to the project)")
        parser.add_argument("--auto", action="store_true", help="find the projects under the path automatically")
        parser.add_argument("--json", action="store_true", help="output the tasks in JSON lines")
        parser.add_argument("--log-level", help="log level (error, warning, info, debug)")
        self.args = parser.parse_args(argv)

    def run(self) -> int:
        args = self.args
        config = Config(log_level=args.log_level or "")
        logger.set_logger_channel(config.logger_key)
        logger.set_log_level(config.log_level)

        if not os.path.exists(args.path):
            logger.error("path not found: {}".format(args.path))
            return 1

        parser = Parser(config=config)
        try:
            if args.auto:
                projects = parser.parse_auto(args.path)
            elif args.playbook:
                projects = parser.parse(args.path, *args.playbook)
            else:
                projects = parser.parse(args.path)
            tasks = []
            for project in projects:
                tasks.extend(project.list_tasks())
        except CompileError as e:
            logger.error("failed to compile the project: {}".format(e))
            return 1

        records = [TaskRecord.from_task(t) for t in tasks]
        if args.json:
            for r in records:
                print(r.to_json())
        else:
            self._print_table(records)
        return 0

    def _print_table(self, records):
        table = []
        for i, r in enumerate(records):
            location = "{}:L{}-{}".format(os.path.relpath(r.defined_in), *r.line_range)
            included_by = r.included_by[0] if r.included_by else ""
            table.append([i + 1, r.name, r.action, r.role, location, included_by])
        print(tabulate(table, headers=["#", "Name", "Action", "Role", "Defined in", "Included by"]))


def main():
    cli = ATCCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
