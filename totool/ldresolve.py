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
import shutil
import subprocess

from totool.common.datatypes import BaseStore

LDCONFIG = os.path.join(os.sep, 'sbin', 'ldconfig')

class LDResolve(BaseStore):

    def __init__(self, from_file=None):
        super(LDResolve, self).__init__()
        self.reload(from_file)

    def _add_or_append(self, libname, fullpath):
        if libname in self:
            self[libname].append(fullpath)
        else:
            self[libname] = [fullpath]

    def _read_ldconfig(self):
        ldconfig = LDCONFIG
        if not os.access(ldconfig, os.X_OK):
            ldconfig = shutil.which('ldconfig')
        if ldconfig is None:
            logging.error('ldconfig not found')
            return []
        try:
            proc = subprocess.run([ldconfig, '-p'], stdout=subprocess.PIPE,
                                  stderr=subprocess.DEVNULL)
        except OSError as err:
            logging.error('running %s failed: %s', ldconfig, err)
            return []
        return proc.stdout.decode(errors='replace').splitlines()

    def reload(self, from_file):
        self.reset()
        self.basepaths = []

        if from_file:
            with open(from_file, 'r') as infd:
                lines = infd.readlines()
        else:
            lines = self._read_ldconfig()

        for line in lines:
            line = line.strip()
            match = re.match(r'(\S+)\s+\((.+)\)\s+=>\ (.+)$', line)
            if match:
                libname, fullpath = match.group(1), match.group(3)
                fullpath = os.path.abspath(fullpath)
                self._add_or_append(libname, fullpath)

                basepath = os.path.dirname(fullpath)
                if basepath not in self.basepaths:
                    self.basepaths.append(basepath)
            else:
                logging.info('ill-formed line \'%s\'', line)

        if not len(self):
            logging.error('ldconfig info is missing!')
        else:
            logging.debug('Loaded %d entries from ldconfig', len(self))

    def get_paths(self, libname):
        retval = list(self.get(libname, []))
        if not retval:
            logging.debug("ldconfig doesn't know %s...", libname)
        return retval
