# Copyright 2017, Andreas Ziegler <andreas.ziegler@fau.de>
#
# This file is part of totool.
#
# totool is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# totool is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with totool.  If not, see <http://www.gnu.org/licenses/>.

import collections
import logging
import os

from totool.common.datatypes import Dependency
from totool.errors import PathResolutionError


def walk(root, prober, printer):
    """Traverse the dependencies of root in breadth-first order.

    prober.probe(path) returns the direct dependencies of path, printer is
    notified of every binary and every edge on the way. Errors of the prober
    are propagated, the epilogue is printed in any case.
    """
    try:
        root = os.path.abspath(root)
    except (OSError, ValueError) as err:
        raise PathResolutionError(root, err)

    printer.print_prologue()
    try:
        to_visit = collections.deque([Dependency(root, '')])
        visited = set()

        while to_visit:
            current = to_visit.popleft()
            if current.bin in visited:
                continue
            visited.add(current.bin)

            if current.bin == root:
                printer.print_root_bin(root)
            else:
                printer.print_dep_bin(current)

            logging.debug('Resolving %s', current.bin)
            deps = prober.probe(current.bin)
            to_visit.extend(deps)
            for dep in deps:
                printer.print_dep(current.bin, dep.bin)

        logging.debug('visited %d binaries from %s', len(visited), root)
    finally:
        printer.print_epilogue()
