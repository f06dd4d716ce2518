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
from fabric import task
from invoke import Collection

from . import ci
from . import database
from . import deploy
from . import devmode
from . import drush
from . import notify
from . import sentry
from . import theme
from . import tooling
from .console import section, title
from .core import Outcome, Project, Step, exit_with, run_plan, run_step
from .environments import resolve_start_command
from .sites import DEFAULT_SITE

__version__ = '1.0.0'


def dev_refresh_workflow(c, project, environment_type, site_name=DEFAULT_SITE,
                         start=False):
    """
    Bring a local environment up to date: dependencies, themes, front-end
    development mode, database and a login link.
    :param start: start the local environment first.
    """
    title('development environment refresh.')
    run_step(c, Step('composer install', directory=project.root))
    if start:
        run_step(c, Step(resolve_start_command(environment_type),
                         directory=project.root))
    run_plan(c, theme.theme_build_plan(project, site_name))
    devmode.enable(project, site_name, yes=True, legacy=project.is_drupal7())
    if database.refresh(c, project, environment_type,
                        site_name) is Outcome.CANCELLED:
        return Outcome.CANCELLED
    section('create login link.')
    run_plan(c, drush.login_link_plan(project, environment_type, site_name))
    return Outcome.SUCCESS


@task(name='dev-refresh', aliases=['magic'])
def dev_refresh(c, site_name=DEFAULT_SITE, environment_type=None, start=False):
    """
    Refresh the local development environment.
    :param site_name: The Drupal site name.
    :param environment_type: The local development environment: ddev, lando.
    :param start: Start the local environment first.
    """
    project = Project.from_context(c)
    return exit_with(dev_refresh_workflow(
        c, project, environment_type or project.settings.environment_type,
        site_name, start))


ns = Collection()
ns.add_task(dev_refresh)
for module in (ci, database, deploy, devmode, drush, notify, sentry, theme,
               tooling):
    ns.add_collection(Collection.from_module(module))
