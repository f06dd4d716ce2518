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

from fabric import task

from .console import section, title
from .core import Step, run_plan
from .environments import resolve_deploy_commands
from .sites import DEFAULT_SITE


def local_deploy_plan(project, environment_type, site_dir=DEFAULT_SITE):
    """
    Steps deploying a site through a local development environment.
    """
    directory = project.site_dir(site_dir)
    return [Step(command, directory=directory)
            for command in resolve_deploy_commands(
                environment_type, site_dir, legacy=project.is_drupal7())]


def server_deploy_plan(app_dir, site_name=DEFAULT_SITE, docroot='web',
                       legacy=False):
    """
    Steps deploying a site on a server, without a local environment.
    :param app_dir: the application directory, holding vendor/.
    :param site_name: the Drupal site directory name.
    :param docroot: the Drupal document root, relative to app_dir.
    :param legacy: True for Drupal 7 sites.
    """
    drush = os.path.join(app_dir, 'vendor', 'bin', 'drush')
    directory = os.path.join(app_dir, docroot, 'sites', site_name)
    if legacy:
        commands = ['{} cc all', '{} updb --yes', '{} fra --yes', '{} cc all']
    else:
        # The second import applies configuration split changes made by
        # the first one.
        commands = ['{} deploy --yes', '{} config:import --yes']
    return [Step(command.format(drush), directory=directory)
            for command in commands]


@task
def drupal(c, app_dir, site_name=DEFAULT_SITE, docroot='web'):
    """
    Run a Drupal 8+ deployment: drush deploy then a second config import.
    :param app_dir: The application directory path.
    :param site_name: The Drupal site directory name.
    :param docroot: The Drupal document root directory.
    """
    title('drush deploy.')
    return run_plan(c, server_deploy_plan(app_dir, site_name, docroot))


@task
def drupal7(c, app_dir, site_name=DEFAULT_SITE, docroot='web'):
    """
    Run a Drupal 7 deployment: cache clear, updates, features revert.
    :param app_dir: The application directory path.
    :param site_name: The Drupal site directory name.
    :param docroot: The Drupal document root directory.
    """
    section('drush updatedb & drush cache-clear.')
    return run_plan(c, server_deploy_plan(app_dir, site_name, docroot,
                                          legacy=True))
