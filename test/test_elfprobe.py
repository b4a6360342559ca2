import io
import os
import shutil
import struct
import sys
import tempfile
import unittest
from unittest import mock

from totool.common.datatypes import Dependency
from totool.elfprobe import DynamicInfo, ElfProber, expand_origin, \
    read_architecture
from totool.errors import ProbeError
from totool.ldresolve import LDResolve
from totool.printers import TextPrinter
from totool.walker import walk

FILE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)),
                         'test_files')
LDCONFIG_FILE = os.path.join(FILE_PATH, 'ldconfig_out')

EM_386 = 3
EM_X86_64 = 62

def write_elf_header(path, elfclass=64, machine=EM_X86_64):
    # ELF header of a shared object without sections or segments
    ident = b'\x7fELF' + bytes([2 if elfclass == 64 else 1, 1, 1, 0, 0]) + \
        bytes(7)
    if elfclass == 64:
        rest = struct.pack('<HHIQQQIHHHHHH', 3, machine, 1, 0, 0, 0, 0, 64,
                           0, 0, 0, 0, 0)
    else:
        rest = struct.pack('<HHIIIIIHHHHHH', 3, machine, 1, 0, 0, 0, 0, 52,
                           0, 0, 0, 0, 0)
    with open(path, 'wb') as outfd:
        outfd.write(ident + rest)
    return path

def is_elf(path):
    try:
        with open(path, 'rb') as infd:
            return infd.read(4) == b'\x7fELF'
    except OSError:
        return False

class TestLDResolve(unittest.TestCase):

    def test_0_load_from_file(self):
        resolver = LDResolve(LDCONFIG_FILE)

        self.assertEqual(len(resolver), 3)
        self.assertEqual(resolver.get_paths('libfoo.so.1'),
                         ['/cache/lib/libfoo.so.1'])
        self.assertEqual(resolver.get_paths('libbar.so.2'),
                         ['/cache/lib/libbar.so.2',
                          '/cache/lib32/libbar.so.2'])
        self.assertEqual(resolver.get_paths('libunknown.so'), [])

    def test_0_basepaths(self):
        resolver = LDResolve(LDCONFIG_FILE)
        self.assertEqual(resolver.basepaths, ['/cache/lib', '/cache/lib32',
                                              '/lib/x86_64-linux-gnu'])

    def test_0_empty_cache_is_reported(self):
        with tempfile.NamedTemporaryFile('w', suffix='_ldconfig') as empty:
            with self.assertLogs(level='ERROR'):
                resolver = LDResolve(empty.name)
        self.assertEqual(len(resolver), 0)


class TestElfProber(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.resolver = LDResolve(LDCONFIG_FILE)
        self.prober = ElfProber(resolver=self.resolver)
        self.bindir = os.path.join(self.tmpdir, 'bin')
        self.libdir = os.path.join(self.tmpdir, 'lib')
        self.rundir = os.path.join(self.tmpdir, 'run')
        for path in (self.bindir, self.libdir, self.rundir):
            os.mkdir(path)
        self.binary = os.path.join(self.bindir, 'app')

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def touch(self, directory, name):
        path = os.path.join(directory, name)
        with open(path, 'w'):
            pass
        return path

    def info(self, needed=(), rpaths=(), runpaths=()):
        info = DynamicInfo(self.binary)
        info.needed_libs = list(needed)
        info.rpaths = list(rpaths)
        info.runpaths = list(runpaths)
        return info

    def test_1_expand_origin(self):
        self.assertEqual(expand_origin('$ORIGIN/../lib:/usr/lib::${ORIGIN}',
                                       '/opt/app/bin'),
                         ['/opt/app/bin/../lib', '/usr/lib', '/opt/app/bin'])

    def test_1_rpath_is_searched(self):
        lib = self.touch(self.libdir, 'libfoo.so.1')
        info = self.info(rpaths=[self.libdir])
        self.assertEqual(self.prober.resolve_needed(info, 'libfoo.so.1'), lib)

    def test_1_runpath_disables_rpath(self):
        self.touch(self.libdir, 'libfoo.so.1')
        run_lib = self.touch(self.rundir, 'libfoo.so.1')
        info = self.info(rpaths=[self.libdir], runpaths=[self.rundir])
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(self.prober.search_paths(info), [self.rundir])
            self.assertEqual(self.prober.resolve_needed(info, 'libfoo.so.1'),
                             run_lib)

    def test_1_ld_library_path_before_runpath(self):
        self.touch(self.rundir, 'libfoo.so.1')
        env_lib = self.touch(self.libdir, 'libfoo.so.1')
        info = self.info(runpaths=[self.rundir])
        with mock.patch.dict(os.environ,
                             {'LD_LIBRARY_PATH': '$ORIGIN/../lib'}):
            self.assertEqual(os.path.normpath(
                self.prober.resolve_needed(info, 'libfoo.so.1')), env_lib)

    def test_1_ldconfig_cache_is_used(self):
        info = self.info()
        with mock.patch('os.path.isfile',
                        side_effect=lambda p: p == '/cache/lib/libfoo.so.1'):
            self.assertEqual(self.prober.resolve_needed(info, 'libfoo.so.1'),
                             '/cache/lib/libfoo.so.1')

    def test_1_unresolved_name(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIsNone(self.prober.resolve_needed(
                self.info(), 'libdoesnotexist-totool.so.0'))

    def test_2_probe_reports_dependencies(self):
        lib = self.touch(self.libdir, 'libfoo.so.1')
        info = self.info(needed=['libfoo.so.1', 'app',
                                 'libdoesnotexist-totool.so.0'],
                         rpaths=[self.libdir, self.bindir])
        self.touch(self.bindir, 'app')
        with mock.patch.object(self.prober, 'read_dynamic',
                               return_value=info):
            with mock.patch.dict(os.environ, {}, clear=True):
                deps = self.prober.probe(self.binary)

        # app resolves to the binary itself and is dropped
        self.assertEqual(deps, [
            Dependency(lib, '(needed libfoo.so.1)'),
            Dependency('libdoesnotexist-totool.so.0', '(not found)'),
        ])

    def test_2_not_an_elf_file(self):
        path = self.touch(self.bindir, 'script')
        with open(path, 'w') as outfd:
            outfd.write('#!/bin/sh\necho hello\n')
        self.assertRaises(ProbeError, self.prober.probe, path)

    def test_2_missing_file(self):
        with self.assertRaises(ProbeError) as ctx:
            self.prober.probe(os.path.join(self.tmpdir, 'nothing'))
        self.assertEqual(ctx.exception.tool, 'elf')

    @unittest.skipUnless(is_elf(os.path.realpath(sys.executable)),
                         'interpreter is not an ELF binary')
    def test_3_probe_interpreter(self):
        binary = os.path.realpath(sys.executable)
        deps = ElfProber().probe(binary)
        self.assertNotIn(binary, [dep.bin for dep in deps])
        for dep in deps:
            self.assertTrue(dep.info.startswith('('))

    def test_4_read_architecture(self):
        lib32 = write_elf_header(os.path.join(self.libdir, 'lib32.so'),
                                 elfclass=32, machine=EM_386)
        lib64 = write_elf_header(os.path.join(self.libdir, 'lib64.so'))
        self.assertEqual(read_architecture(lib32), ('ELFCLASS32', 'EM_386'))
        self.assertEqual(read_architecture(lib64),
                         ('ELFCLASS64', 'EM_X86_64'))

    def test_4_incompatible_libraries_are_skipped(self):
        lib32dir = os.path.join(self.tmpdir, 'lib32')
        os.mkdir(lib32dir)
        lib32 = write_elf_header(os.path.join(lib32dir, 'libbar.so.2'),
                                 elfclass=32, machine=EM_386)
        lib64 = write_elf_header(os.path.join(self.libdir, 'libbar.so.2'))
        ldconfig_file = os.path.join(self.tmpdir, 'ldconfig_out')
        with open(ldconfig_file, 'w') as outfd:
            # The 32 bit entry comes first
            outfd.write('\tlibbar.so.2 (libc6) => {}\n'.format(lib32))
            outfd.write('\tlibbar.so.2 (libc6,x86-64) => {}\n'.format(lib64))
        prober = ElfProber(ldconfig_file=ldconfig_file)

        info = self.info(rpaths=[lib32dir])
        info.architecture = ('ELFCLASS64', 'EM_X86_64')
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(prober.resolve_needed(info, 'libbar.so.2'), lib64)

            info.architecture = ('ELFCLASS32', 'EM_386')
            self.assertEqual(prober.resolve_needed(info, 'libbar.so.2'), lib32)

    def test_4_non_elf_candidate_is_skipped(self):
        self.touch(self.libdir, 'libfoo.so.1')
        info = self.info(rpaths=[self.libdir])
        info.architecture = ('ELFCLASS64', 'EM_X86_64')
        self.assertFalse(self.prober.is_compatible(
            info, os.path.join(self.libdir, 'libfoo.so.1')))

    def test_5_unresolved_names_are_not_expanded(self):
        with mock.patch.object(self.prober, 'read_dynamic') as read_dynamic:
            self.assertEqual(self.prober.probe('libmissing.so.9'), [])
        read_dynamic.assert_not_called()

    def test_5_walk_continues_after_missing_library(self):
        write_elf_header(self.binary)
        present = write_elf_header(os.path.join(self.libdir,
                                                'libpresent.so'))
        root_info = self.info(needed=['libmissing-totool.so.9',
                                      'libpresent.so'],
                              rpaths=[self.libdir])
        root_info.architecture = ('ELFCLASS64', 'EM_X86_64')
        read_dynamic = self.prober.read_dynamic

        def fake_read_dynamic(path):
            if path == self.binary:
                return root_info
            return read_dynamic(path)

        out = io.StringIO()
        with mock.patch.object(self.prober, 'read_dynamic',
                               side_effect=fake_read_dynamic):
            with mock.patch.dict(os.environ, {}, clear=True):
                walk(self.binary, self.prober, TextPrinter(out=out))

        self.assertEqual(out.getvalue(),
                         '{}:\n\tlibmissing-totool.so.9\n\t{}\n'.format(
                             self.binary, present))


if __name__ == '__main__':
    unittest.main()
