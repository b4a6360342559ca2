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

import logging
import os
import re
import subprocess

from totool.common.datatypes import Dependency
from totool.errors import ProbeError, UnexpectedOutputError

EXECUTABLE_PATH_PREFIX = '@executable_path/'

# Matches a dependency line of otool -L, e.g.
#	/usr/lib/libobjc.A.dylib (compatibility version 1.0.0, current version 228.0.0, upward)
DEP_REGEX = re.compile(r'\s*(.*)\s+(\(.*\))')


def resolve_dep_path(bin, path):
    """Turn a dependency path reported for bin into a path that can be fed
    back into otool.
    """
    if path.startswith(EXECUTABLE_PATH_PREFIX):
        bindir = os.path.dirname(bin) + os.sep
        return os.path.normpath(path.replace(EXECUTABLE_PATH_PREFIX,
                                             bindir, 1))
    return path


def parse_otool_output(bin, output):
    deps = []
    # The first line is the binary we are inspecting
    for line in output.splitlines()[1:]:
        if not line.strip():
            continue
        match = DEP_REGEX.search(line)
        if not match:
            raise UnexpectedOutputError(bin, line)
        depbin = resolve_dep_path(bin, match.group(1))
        if depbin == bin:
            # otool may list the binary itself to show its own versions,
            # drop it so we do not print self-edges
            logging.debug('dropping self reference in %s', bin)
            continue
        deps.append(Dependency(depbin, match.group(2)))
    return deps


class OtoolProber:

    def __init__(self, otool=None):
        if otool is None:
            otool = os.environ.get('TOTOOL_OTOOL', 'otool')
        self.otool = otool

    def probe(self, bin):
        cmdline = [self.otool, '-L', bin]
        logging.debug('running %s', ' '.join(cmdline))
        try:
            proc = subprocess.run(cmdline, stdout=subprocess.PIPE,
                                  stderr=subprocess.PIPE)
        except OSError as err:
            raise ProbeError(bin, str(err), tool=self.otool)

        if proc.returncode != 0:
            raise ProbeError(bin, proc.stderr.decode(errors='replace'),
                             tool=self.otool)

        return parse_otool_output(bin, proc.stdout.decode(errors='replace'))
