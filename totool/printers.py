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

import sys


class Printer:
    """Abstracts the walk from the output layout.

    All methods do nothing by default, printers override what they need.
    """

    def __init__(self, out=None):
        self.out = out if out is not None else sys.stdout

    def print_prologue(self):
        """Called before walking the dependency graph."""
        pass

    def print_root_bin(self, bin):
        """Called for the binary we print the dependencies of."""
        pass

    def print_dep_bin(self, dep):
        """Called when walking into a new binary."""
        pass

    def print_dep(self, from_bin, to_bin):
        """Called for each direct dependency between two binaries."""
        pass

    def print_epilogue(self):
        """Called after walking all nodes in the dependency graph."""
        pass


class TextPrinter(Printer):
    """Prints dependencies the way otool does."""

    def __init__(self, verbose=False, out=None):
        super(TextPrinter, self).__init__(out)
        self.verbose = verbose

    def print_root_bin(self, bin):
        self.out.write('{}:\n'.format(bin))

    def print_dep_bin(self, dep):
        if self.verbose:
            self.out.write('\t{} {}\n'.format(dep.bin, dep.info))
        else:
            self.out.write('\t{}\n'.format(dep.bin))


class DotPrinter(Printer):
    """Prints the dependency graph in dot format."""

    # TODO: a fixed graph name clashes when several roots are walked into
    # the same output, name the graph after the root instead.
    def print_prologue(self):
        self.out.write('digraph G {\n')

    def print_dep(self, from_bin, to_bin):
        self.out.write('\t"{}" -> "{}";\n'.format(from_bin, to_bin))

    def print_epilogue(self):
        self.out.write('}\n')
