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

import weakref
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Range(object):
    start_line: int = 0
    end_line: int = 0


@dataclass
class Metadata(object):
    """Provenance of a loaded entity.

    `parent` is the metadata of the lexically enclosing entity. It is kept as
    a weak reference because the enclosing entity is owned by the DataLoader
    that created it, not by its children.
    """

    path: str = ""
    range: Range = field(default_factory=Range)
    _parent_ref: Optional[weakref.ref] = field(default=None, repr=False, compare=False)

    @property
    def parent(self) -> Optional["Metadata"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @parent.setter
    def parent(self, value: Optional["Metadata"]):
        self._parent_ref = weakref.ref(value) if value is not None else None

    @property
    def location(self) -> str:
        if not self.range.start_line:
            return self.path
        return "{}:L{}-{}".format(self.path, self.range.start_line, self.range.end_line)

    def ancestors(self):
        """Yields this metadata and then every enclosing one, innermost first."""
        seen = set()
        current = self
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = current.parent

    def chain(self) -> List[str]:
        return [m.location for m in self.ancestors() if m.path]


def _lc_line(getter, key) -> int:
    try:
        return getter(key)[0] + 1
    except (KeyError, IndexError, TypeError, AttributeError):
        return 0


def node_line(node, default: int = 0) -> int:
    lc = getattr(node, "lc", None)
    if lc is None or lc.line is None:
        return default
    return lc.line + 1


def item_line(seq, index: int, default: int = 0) -> int:
    lc = getattr(seq, "lc", None)
    if lc is None:
        return default
    return _lc_line(lc.item, index) or default


def _end_line(node, default: int) -> int:
    # follow the last child down to the deepest trailing content
    lc = getattr(node, "lc", None)
    if isinstance(node, dict) and node:
        last_key = list(node.keys())[-1]
        line = _lc_line(lc.value, last_key) if lc is not None else 0
        return _end_line(node[last_key], line or default)
    if isinstance(node, list) and node:
        last_index = len(node) - 1
        line = _lc_line(lc.item, last_index) if lc is not None else 0
        return _end_line(node[last_index], line or default)
    return default


def range_from_node(node, line: int = 0) -> Range:
    """Computes the line range of a decoded document node.

    `line` is used when the node itself carries no position, which is the
    case for scalars; their position is known only by the enclosing collection.
    """
    start_line = node_line(node, line)
    return Range(start_line=start_line, end_line=_end_line(node, start_line))
