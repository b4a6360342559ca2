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

from elftools.common.exceptions import ELFError
from elftools.elf.dynamic import DynamicSegment
from elftools.elf.elffile import ELFFile

from totool.common.datatypes import Dependency
from totool.errors import ProbeError
from totool.ldresolve import LDResolve

DEFAULT_LIBRARY_PATHS = [os.path.join(os.sep, 'lib64'),
                         os.path.join(os.sep, 'usr', 'lib64'),
                         os.path.join(os.sep, 'lib'),
                         os.path.join(os.sep, 'usr', 'lib')]


def expand_origin(paths, origin):
    retval = []
    for path in paths.split(':'):
        if not path:
            continue
        path = path.replace('${ORIGIN}', origin).replace('$ORIGIN', origin)
        retval.append(path)
    return retval


def _as_str(value):
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value


def read_architecture(path):
    """Return (EI_CLASS, e_machine) of the ELF file at path."""
    with open(path, 'rb') as fd:
        header = ELFFile(fd).header
    return (header['e_ident']['EI_CLASS'], header['e_machine'])


class DynamicInfo:
    """The parts of an ELF dynamic section needed to locate dependencies."""

    def __init__(self, fullname):
        self.fullname = fullname
        self.needed_libs = []
        self.rpaths = []
        self.runpaths = []
        # (EI_CLASS, e_machine), None if unknown
        self.architecture = None

    def parse(self, elffile):
        header = elffile.header
        self.architecture = (header['e_ident']['EI_CLASS'],
                             header['e_machine'])

        section = elffile.get_section_by_name('.dynamic')
        if not section:
            # Try to get segment if no section was found
            for segment in elffile.iter_segments():
                if isinstance(segment, DynamicSegment):
                    section = segment
                    break

        if not section:
            logging.debug('%s has no dynamic section', self.fullname)
            return

        origin = os.path.dirname(self.fullname)
        for tag in section.iter_tags():
            if tag.entry.d_tag == 'DT_NEEDED':
                self.needed_libs.append(_as_str(tag.needed))
            elif tag.entry.d_tag == 'DT_RPATH':
                self.rpaths = expand_origin(_as_str(tag.rpath), origin)
            elif tag.entry.d_tag == 'DT_RUNPATH':
                self.runpaths = expand_origin(_as_str(tag.runpath), origin)


class ElfProber:

    def __init__(self, resolver=None, ldconfig_file=None):
        if resolver is None:
            resolver = LDResolve(ldconfig_file)
        self.resolver = resolver

    def _ld_library_paths(self, origin):
        if 'LD_LIBRARY_PATH' not in os.environ:
            return []
        return expand_origin(os.environ['LD_LIBRARY_PATH'], origin)

    def search_paths(self, info):
        """Directories to look in, in the order the dynamic loader uses."""
        origin = os.path.dirname(info.fullname)
        to_search = []
        # DT_RPATH is ignored as soon as DT_RUNPATH is present
        if not info.runpaths:
            to_search.extend(info.rpaths)
        to_search.extend(self._ld_library_paths(origin))
        to_search.extend(info.runpaths)
        return to_search

    def is_compatible(self, info, path):
        if not os.path.isfile(path):
            return False
        if info.architecture is None:
            return True
        try:
            architecture = read_architecture(path)
        except (ELFError, OSError) as err:
            logging.debug('skipping %s: %s', path, err)
            return False
        if architecture != info.architecture:
            logging.debug('skipping %s: %s does not match %s', path,
                          architecture, info.architecture)
            return False
        return True

    def resolve_needed(self, info, libname):
        if '/' in libname:
            fullpath = os.path.abspath(libname)
            return fullpath if self.is_compatible(info, fullpath) else None

        for path in self.search_paths(info):
            fullpath = os.path.abspath(os.path.join(path, libname))
            if self.is_compatible(info, fullpath):
                return fullpath

        for fullpath in self.resolver.get_paths(libname):
            if self.is_compatible(info, fullpath):
                return fullpath

        # Directly probe the default paths and those ldconfig knows about
        for basepath in DEFAULT_LIBRARY_PATHS + self.resolver.basepaths:
            fullpath = os.path.join(basepath, libname)
            if self.is_compatible(info, fullpath):
                logging.debug('File system search found %s', fullpath)
                return fullpath

        return None

    def read_dynamic(self, bin):
        info = DynamicInfo(bin)
        try:
            with open(bin, 'rb') as fd:
                info.parse(ELFFile(fd))
        except (ELFError, OSError) as err:
            raise ProbeError(bin, str(err), tool='elf')
        return info

    def probe(self, bin):
        if not os.path.isabs(bin):
            # Unresolved DT_NEEDED names are reported as is, there is
            # nothing to look into
            logging.debug('not expanding unresolved %s', bin)
            return []

        info = self.read_dynamic(bin)

        deps = []
        for libname in info.needed_libs:
            fullpath = self.resolve_needed(info, libname)
            if fullpath is None:
                logging.warning('no file for \'%s\' needed by %s', libname,
                                bin)
                deps.append(Dependency(libname, '(not found)'))
                continue
            if fullpath == bin:
                logging.debug('dropping self reference in %s', bin)
                continue
            deps.append(Dependency(fullpath, '(needed {})'.format(libname)))
        return deps
