# coding: utf-8
#
# Copyright (C) 2016 Savoir-faire Linux Inc. (<www.savoirfairelinux.com>).
#
#    This program is free software: you can redistribute it and/or modify
#    it under the terms of the GNU Affero General Public License as
#    published by the Free Software Foundation, either version 3 of the
#    License, or (at your option) any later version.
#
#    This program is distributed in the hope that it will be useful,
#    but WITHOUT ANY WARRANTY; without even the implied warranty of
#    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#    GNU Affero General Public License for more details.
#
#    You should have received a copy of the GNU Affero General Public License
#    along with this program.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Fatal errors raised by the tasks.

Every error is an Invoke ``Exit`` so the program prints the message and
leaves with a non-zero status, the same way ``abort()`` used to.
"""
from invoke.exceptions import Exit


class DropshipError(Exit):

    def __init__(self, message, code=1):
        super(DropshipError, self).__init__(message, code)

    def __str__(self):
        return self.message


# Configuration errors

class ConfigNotFound(DropshipError):
    pass


class ConfigParseError(DropshipError):
    pass


class SiteNotFound(DropshipError):

    def __init__(self, site_name):
        self.site_name = site_name
        super(SiteNotFound, self).__init__(
            "Configuration for '{}' not found.".format(site_name))


class ConfigKeyMissing(DropshipError):

    def __init__(self, key, site_name=None):
        self.key = key
        self.site_name = site_name
        if site_name is None:
            message = 'Key {} not found in the project configuration.'.format(key)
        else:
            message = "Key {} not found for '{}'.".format(key, site_name)
        super(ConfigKeyMissing, self).__init__(message)


class ConfigTypeError(DropshipError):
    pass


class UnsupportedEnvironment(DropshipError):

    def __init__(self, environment_type):
        self.environment_type = environment_type
        super(UnsupportedEnvironment, self).__init__(
            "Unsupported local environment type '{}'. Use one of: ddev, "
            "lando.".format(environment_type))


# External command errors

class CommandFailed(DropshipError):

    def __init__(self, command, result):
        self.command = command
        self.result = result
        code = result.exited or 1
        super(CommandFailed, self).__init__(
            'Command failed with exit code {}: {}'.format(code, command), code)


class MissingBinary(DropshipError):
    pass


# Filesystem errors

class MissingTemplate(DropshipError):

    def __init__(self, path):
        self.path = path
        super(MissingTemplate, self).__init__(
            'The "{}" file was not found.'.format(path))


# Validation errors

class DriftDetected(DropshipError):
    pass


class StatusReportFailed(DropshipError):
    pass


class NoDatabaseDumps(DropshipError):
    pass


class PhpVersionUnchanged(DropshipError):
    pass
