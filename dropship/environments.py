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
Command strings for the supported local development environments.

Each site is addressed through the Drush alias ``@<site>.<environment>``
that both DDEV and Lando generate for a project.
"""
import shlex
from enum import Enum

from .exceptions import UnsupportedEnvironment
from .sites import DEFAULT_SITE


class LocalEnvironmentType(Enum):
    DDEV = 'ddev'
    LANDO = 'lando'

    @classmethod
    def coerce(cls, value):
        """
        Return the environment type matching a value given on the command line.
        :param value: a LocalEnvironmentType or its name, e.g. "ddev".
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedEnvironment(value)


def drush_command(environment_type, site_dir, *args):
    environment_type = LocalEnvironmentType.coerce(environment_type)
    return ' '.join(('{0} drush @{1}.{0}'.format(environment_type.value,
                                                 site_dir),) + args)


def resolve_deploy_commands(environment_type, site_dir=DEFAULT_SITE,
                            legacy=False):
    """
    Commands deploying code changes on a site.
    :param environment_type: the local environment type.
    :param site_dir: the Drupal site directory name.
    :param legacy: True for Drupal 7 sites, which have no "drush deploy".
    """
    if legacy:
        return [
            drush_command(environment_type, site_dir, 'cache-clear all'),
            drush_command(environment_type, site_dir, 'updatedb --yes'),
            drush_command(environment_type, site_dir, 'features-revert-all --yes'),
            drush_command(environment_type, site_dir, 'cache-clear all'),
        ]
    # The configuration is imported a second time so configuration split
    # settings changed by the first import are applied as well.
    # https://github.com/drush-ops/drush/issues/2449#issuecomment-708655673
    return [
        drush_command(environment_type, site_dir, 'deploy --yes'),
        drush_command(environment_type, site_dir, 'config:import --yes'),
    ]


def resolve_database_import_command(environment_type, site_name, db_path):
    """
    Command importing a database dump into a site database.
    :param environment_type: the local environment type.
    :param site_name: the Drupal site name.
    :param db_path: path of the dump to import.
    """
    environment_type = LocalEnvironmentType.coerce(environment_type)
    if environment_type is LocalEnvironmentType.DDEV:
        target_db = 'db' if site_name == DEFAULT_SITE else site_name
        return 'ddev import-db --target-db={} --src={}'.format(
            target_db, shlex.quote(str(db_path)))
    command = 'lando db-import {}'.format(shlex.quote(str(db_path)))
    # Multisites need the host so Lando imports into the right database.
    if site_name != DEFAULT_SITE:
        command += ' --host={}'.format(site_name)
    return command


def resolve_login_link_command(environment_type, site_dir=DEFAULT_SITE,
                               admin_uid=1):
    return drush_command(environment_type, site_dir,
                         'user:login --uid={}'.format(admin_uid))


def resolve_start_command(environment_type):
    return '{} start'.format(LocalEnvironmentType.coerce(environment_type).value)
