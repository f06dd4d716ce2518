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
import os
import re
import shutil
from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import Enum

from invoke.exceptions import Exit

from .console import warn
from .default_vars import Settings
from .exceptions import (CommandFailed, ConfigKeyMissing, ConfigTypeError,
                         MissingBinary)
from .sites import SiteConfigStore, is_empty


class Outcome(Enum):
    SUCCESS = 'success'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


@dataclass
class Step:
    """
    One command of a plan.

    ``directory`` is the working directory, ``env`` holds inline environment
    variables and ``capture`` hides the output so it can be parsed.
    """
    command: str
    directory: str = None
    env: dict = field(default_factory=dict)
    capture: bool = False


@dataclass
class BatchResult:
    """
    Results of an operation run over several sites.

    Entries are (site name, Invoke result or message) pairs.
    """
    entries: list = field(default_factory=list)

    def append(self, site_name, entry):
        self.entries.append((site_name, entry))

    def for_site(self, site_name):
        return [entry for name, entry in self.entries if name == site_name]

    @property
    def messages(self):
        return [entry for _, entry in self.entries if isinstance(entry, str)]

    @property
    def successful(self):
        """
        True if every command result recorded in the batch succeeded.
        """
        return all(entry.ok for _, entry in self.entries
                   if not isinstance(entry, str))

    @property
    def failed_sites(self):
        """
        Names of the sites with a failed command, in batch order.
        """
        names = []
        for name, entry in self.entries:
            if not isinstance(entry, str) and entry.failed \
                    and name not in names:
                names.append(name)
        return names


@dataclass
class Project:
    """
    Paths and settings of the Drupal project the tasks run against.
    """
    root: str
    settings: Settings

    @classmethod
    def from_context(cls, c):
        data = c.config.get('dropship', {})
        settings = Settings.from_mapping(
            {key: data[key] for key in data.keys()})
        return cls(root=os.getcwd(), settings=settings)

    def path(self, *parts):
        return os.path.join(self.root, *parts)

    @property
    def drupal_root(self):
        return self.path(self.settings.drupal_root)

    @property
    def vendor_dir(self):
        return self.path(self.settings.vendor_dir)

    @property
    def drush(self):
        return os.path.join(self.vendor_dir, 'bin', 'drush')

    @property
    def sites(self):
        return SiteConfigStore(self.path(self.settings.sites_config_file))

    def site_dir(self, site_name):
        return os.path.join(self.drupal_root, 'sites', site_name)

    def is_drupal7(self):
        return drupal_version_is_d7(self.drupal_root)

    def site_setting(self, key, site_name):
        """
        Get a value from the site configuration, falling back to the project
        settings when the site does not set it.
        """
        fallback = getattr(self.settings, key)
        if not os.path.exists(self.sites.path):
            return fallback
        return self.sites.get_optional_item(key, site_name, fallback)


def exit_with(outcome):
    """
    Turn the outcome of a guarded operation into the task exit status.
    Cancellation exits with status 2.
    """
    if outcome is Outcome.CANCELLED:
        warn('Cancelled.')
        raise Exit(code=2)
    return outcome


def require_setting(settings, key, expected_type):
    """
    Get a project setting, checking it is set and has the expected type.
    :param settings: the project Settings.
    :param key: the setting name.
    :param expected_type: the expected Python type, e.g. str or list.
    """
    value = getattr(settings, key, None)
    if is_empty(value):
        raise ConfigKeyMissing(key)
    if not isinstance(value, expected_type):
        expected = expected_type if isinstance(expected_type, tuple) \
            else (expected_type,)
        raise ConfigTypeError(
            'Key {} in the project configuration does not match expected '
            'type: {}. Found {}.'.format(
                key, ' or '.join(t.__name__ for t in expected),
                type(value).__name__))
    return value


def run_step(c, step, warn_only=False):
    """
    Run a single step.
    :param c: the Invoke context.
    :param step: the Step to run.
    :param warn_only: return failed results instead of raising.
    :return: the Invoke result.
    """
    directory = c.cd(step.directory) if step.directory else nullcontext()
    with directory:
        result = c.run(step.command, env=step.env, hide=step.capture,
                       echo=not step.capture, warn=True)
    if result.failed and not warn_only:
        raise CommandFailed(step.command, result)
    return result


def run_plan(c, plan):
    """
    Run the steps of a plan in order, stopping at the first failure.
    :return: the list of results.
    """
    return [run_step(c, step) for step in plan]


def drupal_version_is_d7(drupal_root):
    """
    Check whether the Drupal root holds a Drupal 7 installation.
    """
    bootstrap = os.path.join(drupal_root, 'includes', 'bootstrap.inc')
    if not os.path.isfile(bootstrap):
        return False
    with open(bootstrap, 'r', errors='replace') as stream:
        match = re.search(r"define\('VERSION',\s*'([^']+)'\)", stream.read())
    return bool(match) and match.group(1).startswith('7.')


def find_binary(command, alternatives=()):
    """
    Resolve the first available binary among a command and its alternatives.
    :param command: the preferred binary, or a path to it.
    :param alternatives: other binaries to try, in order.
    :return: the path to the binary.
    """
    if os.path.isfile(command) and os.access(command, os.X_OK):
        return command
    for candidate in (command,) + tuple(alternatives):
        path = shutil.which(candidate)
        if path:
            return path
    warn('Could not resolve any of the executables suggested.')
    raise MissingBinary('None of {} could be found.'.format(
        ', '.join((command,) + tuple(alternatives))))


def split_list(value):
    """
    Split a comma separated command line value.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [item.strip() for item in value.split(',') if item.strip()]
