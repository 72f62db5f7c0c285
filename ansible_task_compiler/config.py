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
import configparser
from dataclasses import dataclass, field

import yaml

import ansible_task_compiler.logger as logger
from .finder import ansible_cfg_file


default_config_path = os.path.expanduser("~/.atc/config")
default_log_level = "info"
default_logger_key = "atc"
default_roles_path = []

default_ansible_config_path = "/etc/ansible/ansible.cfg"


@dataclass
class Config:
    """Configuration of this tool.

    Each value is taken from the environment variable first, then from the
    YAML config file, then from the default.
    """

    path: str = ""

    logger_key: str = ""
    log_level: str = ""
    default_roles_path: list = field(default_factory=list)

    _data: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.path:
            self.path = os.environ.get("ATC_CONFIG", default_config_path)
        config_data = {}
        if os.path.exists(self.path):
            with open(self.path, "r") as file:
                try:
                    config_data = yaml.safe_load(file) or {}
                except Exception as e:
                    raise ValueError(f"failed to load the config file: {e}") from e
        if not isinstance(config_data, dict):
            raise ValueError(f"the config file must be a dict, but got {type(config_data).__name__}")
        self._data = config_data

        if not self.logger_key:
            self.logger_key = self._get_single_config("ATC_LOGGER_KEY", "logger_key", default_logger_key)
        if not self.log_level:
            self.log_level = self._get_single_config("ATC_LOG_LEVEL", "log_level", default_log_level)
        if not self.default_roles_path:
            self.default_roles_path = self._get_single_config("DEFAULT_ROLES_PATH", "default_roles_path", default_roles_path, "list", ":")

    def _get_single_config(self, env_key: str = "", yaml_key: str = "", __default: any = None, __type=None, separator=""):
        if env_key in os.environ:
            _from_env = os.environ.get(env_key, None)
            if _from_env and __type == "list":
                _from_env = [v for v in _from_env.split(separator) if v]
            return _from_env
        elif yaml_key in self._data:
            _from_file = self._data.get(yaml_key, None)
            if __type == "list" and isinstance(_from_file, str):
                _from_file = [v for v in _from_file.split(separator) if v]
            return _from_file
        else:
            return __default


@dataclass
class AnsibleConfig:
    """The part of ansible.cfg used by the loader."""

    path: str = ""
    roles_path: list = field(default_factory=list)


def resolve_ansible_config_path(project_path: str) -> str:
    # https://docs.ansible.com/ansible/latest/reference_appendices/config.html#the-configuration-file
    cfgpath = os.environ.get("ANSIBLE_CONFIG", "")
    if cfgpath:
        return cfgpath
    candidates = [
        os.path.join(project_path, ansible_cfg_file),
        os.path.expanduser(os.path.join("~", "." + ansible_cfg_file)),
        default_ansible_config_path,
    ]
    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return ""


def read_ansible_config(project_path: str) -> AnsibleConfig:
    ansible_cfg = AnsibleConfig()
    cfgpath = resolve_ansible_config_path(project_path)
    if not cfgpath:
        return ansible_cfg

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with open(cfgpath, "r") as file:
            parser.read_file(file)
    except (OSError, configparser.Error) as e:
        raise ValueError(f"failed to read the ansible config {cfgpath}: {e}") from e
    logger.debug("use the ansible config {}".format(cfgpath))

    ansible_cfg.path = cfgpath
    roles_path = parser.get("defaults", "roles_path", fallback="")
    base_dir = os.path.dirname(os.path.abspath(cfgpath))
    for p in roles_path.split(":"):
        p = os.path.expanduser(p.strip())
        if not p:
            continue
        if not os.path.isabs(p):
            p = os.path.join(base_dir, p)
        ansible_cfg.roles_path.append(os.path.normpath(p))
    return ansible_cfg
