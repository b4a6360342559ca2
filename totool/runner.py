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

import argparse
import logging
import sys

from totool.elfprobe import ElfProber
from totool.errors import TotoolError, UsageError
from totool.printers import DotPrinter, TextPrinter
from totool.probe import OtoolProber
from totool.walker import walk

class Runner():

    def __init__(self, argv=None, out=None, prober=None):
        self.out = out if out is not None else sys.stdout
        self.parse_arguments(argv)
        self.prober = prober
        self.printer = self.get_printer()

    def parse_arguments(self, argv):
        self.parser = argparse.ArgumentParser(prog='totool',
            description='Display direct and transitive dependencies of ' \
                'binaries by walking the output of otool -L.')
        self.parser.add_argument('paths', type=str, nargs='*',
                                 help='the binaries to process')
        self.parser.add_argument('-v', '--verbose', action='store_true',
                                 help='output extra info')
        self.parser.add_argument('-dot', '--dot', action='store_true',
                                 help='generate dot output')
        self.parser.add_argument('--elf', action='store_true',
                                 help='read ELF dynamic sections instead ' \
                                     'of running otool')
        self.parser.add_argument('--otool', action='store',
                                 help='otool executable to run')
        self.parser.add_argument('--ldconfig', action='store',
                                 help='file with saved ldconfig -p output ' \
                                     '(only with --elf)')
        self.parser.add_argument('--debug', action='store_true',
                                 help=argparse.SUPPRESS)
        self.args = self.parser.parse_args(argv)

        loglevel = logging.WARNING
        if self.args.verbose:
            loglevel = logging.INFO
        if self.args.debug:
            loglevel = logging.DEBUG

        logging.basicConfig(level=loglevel)

    def get_printer(self):
        if self.args.dot:
            return DotPrinter(out=self.out)
        return TextPrinter(verbose=self.args.verbose, out=self.out)

    def get_prober(self):
        if self.prober is None:
            if self.args.elf:
                self.prober = ElfProber(ldconfig_file=self.args.ldconfig)
            else:
                self.prober = OtoolProber(self.args.otool)
        return self.prober

    def process(self):
        if not self.args.paths:
            raise UsageError('no paths given')

        prober = self.get_prober()
        logging.info('Processing %d paths in total', len(self.args.paths))

        failed = 0
        for path in self.args.paths:
            logging.info('Processing %s', path)
            try:
                walk(path, prober, self.printer)
            except TotoolError as err:
                logging.error('%s: %s', path, err)
                failed += 1
        return failed


def main(argv=None):
    runner = Runner(argv)
    try:
        runner.process()
    except UsageError:
        runner.parser.print_help(sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
