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

import pytest

from ansible_task_compiler.exceptions import (
    CyclicDependencyError,
    IncludeTargetLoadError,
    PlaybookReadError,
    RoleNotFoundError,
    TaskDecodeError,
)
from ansible_task_compiler.loader import DataLoader
from ansible_task_compiler.models import LoadRoleOptions


def test_load_tasks_with_include_tasks(make_files):
    root = make_files(
        {
            "roles/test/tasks/main.yaml": """\
                ---
                - name: Test task
                  debug:
                    msg:
                    - "Test task"

                - name: Include tasks from current role
                  include_tasks:
                    file: "included.yaml"

                - name: Include tasks from other role
                  include_tasks:
                    file: "../../test2/tasks/main.yaml"
                """,
            "roles/test/tasks/included.yaml": """\
                ---
                - name: Test task 2
                  debug:
                    msg:
                    - "Test task 2"
                """,
            "roles/test2/tasks/main.yaml": """\
                ---
                - name: Test task 3
                  debug:
                    msg:
                    - "Test task 3"
                """,
        }
    )

    loader = DataLoader(root)
    tasks = loader.load_tasks(None, None, "roles/test/tasks/main.yaml")
    assert len(tasks) == 3

    flatten = tasks.compile()
    assert [t.name for t in flatten] == ["Test task", "Test task 2", "Test task 3"]
    assert flatten[0].parent is None
    assert flatten[1].parent is tasks[1]
    assert flatten[2].parent is tasks[2]
    assert flatten[1].metadata.path == os.path.join(root, "roles/test/tasks/included.yaml")
    assert flatten[2].metadata.path == os.path.join(root, "roles/test2/tasks/main.yaml")


def test_load_tasks_with_templated_include_tasks(make_files):
    root = make_files(
        {
            "roles/test/tasks/main.yaml": """\
                ---
                - name: Test task
                  debug:
                    msg:
                    - "Test task"

                - name: Include tasks from current role
                  include_tasks:
                    file: '{{ includedfile }}'
                  vars:
                    includedfile: "included.yaml"
                """,
            "roles/test/tasks/included.yaml": """\
                ---
                - name: Test task 2
                  debug:
                    msg:
                    - "Test task 2"
                """,
        }
    )

    loader = DataLoader(root)
    tasks = loader.load_tasks(None, None, "roles/test/tasks/main.yaml")
    assert len(tasks) == 2

    flatten = tasks.compile()
    assert [t.name for t in flatten] == ["Test task", "Test task 2"]
    assert flatten[1].parent.name == "Include tasks from current role"


@pytest.mark.parametrize(
    "include_task",
    [
        "include_tasks: included.yaml",
        "include_tasks:\n    file: included.yaml",
        "ansible.builtin.import_tasks: included.yaml",
        "ansible.builtin.include_tasks:\n    file: included.yaml",
        "include: included.yaml",
    ],
)
def test_free_form_and_structured_include_tasks(make_files, include_task):
    root = make_files(
        {
            "tasks/main.yaml": "- name: Include\n  " + include_task + "\n",
            "tasks/included.yaml": """\
                - name: Included task
                  debug:
                    msg: included
                """,
        }
    )

    loader = DataLoader(root)
    flatten = loader.load_tasks(None, None, "tasks/main.yaml").compile()
    assert len(flatten) == 1
    assert flatten[0].name == "Included task"
    assert flatten[0].parent.name == "Include"


def test_load_task_with_include_role(make_files):
    root = make_files(
        {
            "roles/test/tasks/main.yaml": """\
                ---
                - name: Test task
                  debug:
                    msg:
                    - "Test task"

                - name: Include role
                  include_role:
                    name: included
                """,
            "roles/included/tasks/main.yaml": """\
                ---
                - name: Test task 2
                  debug:
                    msg:
                    - "Test task 2"
                """,
        }
    )

    loader = DataLoader(root)
    role = loader.load_role(None, None, "test")
    flatten = role.compile()

    assert len(flatten) == 2
    assert flatten[0].name == "Test task"
    assert flatten[1].name == "Test task 2"
    assert flatten[1].parent.name == "Include role"
    assert flatten[1].role.name == "included"


def test_include_role_with_tasks_from(make_files):
    root = make_files(
        {
            "tasks/main.yaml": """\
                - name: Include install tasks
                  ansible.builtin.include_role:
                    name: web
                    tasks_from: install.yml
                    vars_from: debian
                    public: yes
                """,
            "roles/web/tasks/main.yaml": """\
                - name: Main task
                  debug:
                    msg: main
                """,
            "roles/web/tasks/install.yaml": """\
                - name: Install task
                  debug:
                    msg: "{{ package }}"
                """,
            "roles/web/vars/main.yaml": "package: nginx\n",
            "roles/web/vars/debian.yaml": "package: nginx-full\n",
        }
    )

    loader = DataLoader(root)
    flatten = loader.load_tasks(None, None, "tasks/main.yaml").compile()
    assert [t.name for t in flatten] == ["Install task"]

    task = flatten[0]
    assert task.role.variables == {"package": "nginx-full"}
    assert task.role.is_public()
    assert task.module("debug") == {"msg": "nginx-full"}


def test_free_form_include_role(make_files):
    root = make_files(
        {
            "tasks/main.yaml": "- import_role: web\n",
            "roles/web/tasks/main.yml": "- name: Web task\n  debug: {}\n",
        }
    )

    loader = DataLoader(root)
    flatten = loader.load_tasks(None, None, "tasks/main.yaml").compile()
    assert [t.name for t in flatten] == ["Web task"]


def test_role_including_its_other_tasks_file(make_files):
    root = make_files(
        {
            "roles/web/tasks/main.yml": """\
                - name: Install
                  include_role:
                    name: web
                    tasks_from: install
                """,
            "roles/web/tasks/install.yml": "- name: Install package\n  debug: {}\n",
        }
    )

    loader = DataLoader(root)
    flatten = loader.load_role(None, None, "web").compile()
    assert [t.name for t in flatten] == ["Install package"]
    assert flatten[0].parent.name == "Install"


def test_role_including_its_own_tasks_file(make_files):
    root = make_files({"roles/web/tasks/main.yml": "- name: Loop\n  include_role:\n    name: web\n"})

    loader = DataLoader(root)
    with pytest.raises(CyclicDependencyError):
        loader.load_role(None, None, "web").compile()


def test_include_role_vars_apply_to_role_tasks(make_files):
    root = make_files(
        {
            "tasks/main.yml": """\
                - name: Include web
                  include_role:
                    name: web
                  vars:
                    step: setup
                """,
            "roles/web/meta/main.yml": "dependencies:\n  - base\n",
            "roles/base/tasks/main.yml": "- name: Base task\n  debug:\n    msg: \"{{ step }}\"\n",
            "roles/web/tasks/main.yml": "- name: Run step\n  include_tasks: \"{{ step }}.yml\"\n",
            "roles/web/tasks/setup.yml": "- name: Setup task\n  debug: {}\n",
        }
    )

    loader = DataLoader(root)
    flatten = loader.load_tasks(None, None, "tasks/main.yml").compile()
    assert [t.name for t in flatten] == ["Base task", "Setup task"]
    assert flatten[0].parent.name == "Include web"
    assert flatten[0].module("debug") == {"msg": "setup"}
    assert flatten[1].parent.name == "Run step"
    assert flatten[1].parent.parent.name == "Include web"


def test_load_task_with_block(make_files):
    root = make_files(
        {
            "main.yaml": """\
                ---
                - name: Task with block
                  block:
                    - name: Test task
                      debug:
                        msg: test task
                    - block:
                        - name: Nested task
                          debug:
                            msg: nested
                  rescue:
                    - name: Rescue task
                      debug:
                        msg: rescue
                  always:
                    - name: Always task
                      debug:
                        msg: always
                """,
        }
    )

    loader = DataLoader(root)
    tasks = loader.load_tasks(None, None, "main.yaml")
    assert len(tasks) == 1

    flatten = tasks[0].compile()
    assert [t.name for t in flatten] == ["Test task", "Nested task", "Rescue task", "Always task"]
    assert flatten[0].parent.name == "Task with block"
    assert flatten[1].parent.parent.name == "Task with block"
    assert flatten[1].metadata.path == os.path.join(root, "main.yaml")


def test_load_role_dependencies(make_files):
    root = make_files(
        {
            "roles/role1/meta/main.yaml": """\
                ---
                dependencies:
                - role: role2
                """,
            "roles/role1/tasks/main.yaml": """\
                - name: Role1 task
                  debug:
                    msg: role1
                """,
            "roles/role2/meta/main.yaml": """\
                dependencies:
                - role3
                """,
            "roles/role2/tasks/main.yaml": """\
                ---
                - name: Role2 task
                  debug:
                    msg: Test task
                """,
            "roles/role3/tasks/main.yaml": """\
                - name: Role3 task
                  debug:
                    msg: role3
                """,
        }
    )

    loader = DataLoader(root)
    role = loader.load_role(None, None, "role1")

    tasks = role.compile()
    assert [t.name for t in tasks] == ["Role3 task", "Role2 task", "Role1 task"]
    assert [r.name for r in role.get_all_deps()] == ["role3", "role2"]

    # dependencies are loaded once
    assert [t.name for t in role.compile()] == ["Role3 task", "Role2 task", "Role1 task"]


def test_cyclic_role_dependencies(make_files):
    root = make_files(
        {
            "roles/role1/meta/main.yaml": "dependencies:\n- role2\n",
            "roles/role2/meta/main.yaml": "dependencies:\n- role1\n",
        }
    )

    loader = DataLoader(root)
    role = loader.load_role(None, None, "role1")
    with pytest.raises(CyclicDependencyError):
        role.compile()
    with pytest.raises(CyclicDependencyError):
        role.load_default_vars()


def test_task_file_including_itself(make_files):
    root = make_files({"tasks/main.yaml": "- name: Loop\n  include_tasks: main.yaml\n"})

    loader = DataLoader(root)
    tasks = loader.load_tasks(None, None, "tasks/main.yaml")
    with pytest.raises(CyclicDependencyError):
        tasks.compile()


def test_role_not_found(make_files):
    root = make_files({"roles/exists/tasks/main.yaml": "- debug: {}\n"})

    loader = DataLoader(root)
    with pytest.raises(RoleNotFoundError) as excinfo:
        loader.load_role(None, None, "missing")
    assert excinfo.value.role_name == "missing"


def test_role_search_paths_and_cache(make_files):
    root = make_files({"shared/common/tasks/main.yaml": "- name: Common task\n  debug: {}\n"})

    loader = DataLoader(os.path.join(root, "project"), roles_paths=[os.path.join(root, "shared")])
    role = loader.load_role(None, None, "common")
    assert role.path == os.path.join(root, "shared", "common")
    assert loader.role_cache == {"common": role.path}

    # the cache holds the path only; the files are read again with the new options
    other = loader.load_role_with_options(None, None, "common", LoadRoleOptions(tasks_file="missing"))
    assert other is not role
    assert other.path == role.path
    assert len(other.tasks) == 0
    assert len(role.tasks) == 1


def test_include_target_not_found(make_files):
    root = make_files(
        {
            "roles/test/tasks/main.yaml": """\
                - name: Include missing file
                  include_tasks: missing.yaml
                """,
        }
    )

    loader = DataLoader(root)
    role = loader.load_role(None, None, "test")
    with pytest.raises(IncludeTargetLoadError) as excinfo:
        role.compile()
    chain = excinfo.value.chain
    assert chain[0] == "{}:L1-2".format(os.path.join(root, "roles/test/tasks/main.yaml"))
    assert chain[-1] == os.path.join(root, "roles/test")
    assert "include chain" in str(excinfo.value)


def test_include_with_undefined_variable(make_files):
    root = make_files({"tasks/main.yaml": "- include_tasks: '{{ undefined_var }}.yml'\n"})

    loader = DataLoader(root)
    with pytest.raises(IncludeTargetLoadError):
        loader.load_tasks(None, None, "tasks/main.yaml").compile()


def test_malformed_tasks_file(make_files):
    root = make_files({"tasks/main.yaml": "name: not a list\n"})

    loader = DataLoader(root)
    with pytest.raises(TaskDecodeError):
        loader.load_tasks(None, None, "tasks/main.yaml")


def test_include_playbooks(make_files):
    root = make_files(
        {
            "playbook.yaml": """\
                ---
                - name: Include a play after another play
                  ansible.builtin.import_playbook: otherplays.yaml
                  tasks:
                    - name: Ignored task
                      debug: {}
                """,
            "otherplays.yaml": """\
                ---
                - hosts: localhost
                  tasks:
                    - name: Task
                      ansible.builtin.debug:
                        msg: play2
                """,
        }
    )

    loader = DataLoader(root)
    playbook = loader.load_playbook(None, "playbook.yaml")

    tasks = playbook.compile()
    assert [t.name for t in tasks] == ["Task"]
    assert tasks[0].play.hosts == "localhost"


def test_load_plays_with_tasks(make_files):
    root = make_files(
        {
            "playbook.yaml": """\
                ---
                - name: Play with task lists
                  hosts: all
                  roles:
                    - role: web
                  post_tasks:
                    - name: Post task
                      debug:
                        msg: Post task
                  tasks:
                    - name: Task
                      debug:
                        msg: Task
                  pre_tasks:
                    - name: Pre task
                      debug:
                        msg: Pre task
                """,
            "roles/web/tasks/main.yaml": "- name: Role task\n  debug: {}\n",
        }
    )

    loader = DataLoader(root)
    playbook = loader.load_playbook(None, "playbook.yaml")

    tasks = playbook.compile()
    assert [t.name for t in tasks] == ["Pre task", "Task", "Post task", "Role task"]
    play = playbook[0]
    assert tasks[0].play is play
    assert tasks[3].play is play
    assert tasks[0].metadata.parent is play.metadata


def test_non_playbook_yaml(make_files):
    root = make_files(
        {
            "tasks.yaml": "- name: A task file\n  debug: {}\n",
            "vars.yaml": "key: value\n",
        }
    )

    loader = DataLoader(root)
    assert len(loader.load_playbook(None, "tasks.yaml")) == 0
    assert len(loader.load_playbook(None, "vars.yaml")) == 0


def test_playbook_not_found(make_files):
    root = make_files({})

    loader = DataLoader(root)
    with pytest.raises(PlaybookReadError):
        loader.load_playbook(None, "missing.yaml")


def test_playbook_with_missing_role(make_files):
    root = make_files({"playbook.yaml": "- hosts: all\n  roles:\n    - missing\n"})

    loader = DataLoader(root)
    with pytest.raises(RoleNotFoundError) as excinfo:
        loader.load_playbook(None, "playbook.yaml")
    assert excinfo.value.chain == ["{}:L1-3".format(os.path.join(root, "playbook.yaml"))]
