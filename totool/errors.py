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


class TotoolError(Exception):
    pass


class UsageError(TotoolError):
    pass


class PathResolutionError(TotoolError):

    def __init__(self, path, reason):
        super(PathResolutionError, self).__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return 'cannot get {!r} absolute path: {}'.format(self.path,
                                                          self.reason)


class ProbeError(TotoolError):
    """Raised when the dependencies of a binary cannot be inspected.

    stderr holds whatever diagnostics the inspection tool printed.
    """

    def __init__(self, bin, stderr='', tool='otool'):
        super(ProbeError, self).__init__(bin, stderr)
        self.bin = bin
        self.stderr = stderr
        self.tool = tool

    def __str__(self):
        msg = '{} error when processing {}'.format(self.tool, self.bin)
        details = self.stderr.strip()
        if details:
            msg = '{}: {}'.format(msg, details)
        return msg


class UnexpectedOutputError(TotoolError):
    """The inspection tool printed a line we do not know how to parse."""

    def __init__(self, bin, line):
        super(UnexpectedOutputError, self).__init__(bin, line)
        self.bin = bin
        self.line = line

    def __str__(self):
        return 'unexpected output while processing {}: {!r}'.format(self.bin,
                                                                    self.line)
