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
Front-end development mode.

Enabling it copies Drupal's example local settings and development services
into the site, turns Twig debugging on and disables the render, page and
dynamic page caches. Both operations overwrite local files and ask for a
confirmation unless ``--yes`` is given.
"""
import os
import shutil

from fabric import task
from ruamel.yaml import YAML

from .console import confirm, say, title, yell
from .core import Outcome, Project, exit_with
from .exceptions import MissingTemplate
from .sites import DEFAULT_SITE

SERVICES_FILENAME = 'fe.development.services.yml'

SETTINGS_REPLACEMENTS = [
    ('/sites/development.services.yml', '/sites/{}'.format(SERVICES_FILENAME)),
    ("# $settings['cache']['bins']['render']",
     "$settings['cache']['bins']['render']"),
    ("# $settings['cache']['bins']['dynamic_page_cache'] = ",
     "$settings['cache']['bins']['dynamic_page_cache'] = "),
    ("# $settings['cache']['bins']['page'] = ",
     "$settings['cache']['bins']['page'] = "),
]

ADVAGG_SNIPPET = """
/**
 *  If advagg module is present, disable its functionality.
 */
$config['advagg.settings']['enabled'] = FALSE;
"""

TWIG_DEVELOPMENT_CONFIG = {
    'debug': True,
    'auto_reload': True,
    'cache': False,
}


def settings_path(project, site_dir):
    return os.path.join(project.site_dir(site_dir), 'settings.local.php')


def services_path(project):
    return os.path.join(project.drupal_root, 'sites', SERVICES_FILENAME)


def confirm_overwrite(paths, yes=False):
    """
    Ask before overwriting local files.
    :return: True when the operation may go on.
    """
    if yes:
        return True
    yell('This command will overwrite any customizations you have made to '
         '{}.'.format(' and '.join(paths)))
    return confirm('This command is destructive. Do you wish to continue?')


def enable_twig_debug(path):
    """
    Turn Twig debugging on and its cache off in a services file.
    """
    yaml = YAML()
    with open(path, 'r') as stream:
        services = yaml.load(stream) or {}
    if not isinstance(services.get('parameters'), dict):
        services['parameters'] = {}
    services['parameters']['twig.config'] = dict(TWIG_DEVELOPMENT_CONFIG)
    with open(path, 'w') as stream:
        yaml.dump(services, stream)


def disable_caches(path):
    """
    Point the local settings at the front-end services file and uncomment
    the cache bins overrides.
    """
    with open(path, 'r') as stream:
        content = stream.read()
    for search, replace in SETTINGS_REPLACEMENTS:
        content = content.replace(search, replace)
    content += ADVAGG_SNIPPET
    with open(path, 'w') as stream:
        stream.write(content)


def enable(project, site_dir=DEFAULT_SITE, yes=False, legacy=False):
    """
    Enable front-end development mode on a site.
    :param legacy: Drupal 7 sites only get the local settings file.
    :return: Outcome.SUCCESS or Outcome.CANCELLED.
    """
    local_settings = settings_path(project, site_dir)
    services = services_path(project)
    if not confirm_overwrite([local_settings] if legacy
                             else [local_settings, services], yes):
        return Outcome.CANCELLED

    sites_dir = os.path.join(project.drupal_root, 'sites')
    example_settings = os.path.join(sites_dir, 'example.settings.local.php')
    example_services = os.path.join(sites_dir, 'development.services.yml')
    templates = [example_settings] if legacy \
        else [example_settings, example_services]
    for template in templates:
        if not os.path.isfile(template):
            raise MissingTemplate(template)

    title('enabling front-end development mode.')
    say('copying settings.local.php into sites/{}.'.format(site_dir))
    shutil.copyfile(example_settings, local_settings)
    if legacy:
        return Outcome.SUCCESS

    say('copying development.services.yml to sites/{}.'.format(
        SERVICES_FILENAME))
    shutil.copyfile(example_services, services)
    say('optimizing twig for front-end development in development services '
        'yml config.')
    enable_twig_debug(services)
    say('disabling render and dynamic_page_cache in settings.local.php.')
    disable_caches(local_settings)
    return Outcome.SUCCESS


def disable(project, site_dir=DEFAULT_SITE, yes=False):
    """
    Disable front-end development mode by removing the files enable created.
    :return: Outcome.SUCCESS or Outcome.CANCELLED.
    """
    paths = [settings_path(project, site_dir), services_path(project)]
    if not confirm_overwrite(paths, yes):
        return Outcome.CANCELLED
    title('disabling front-end development mode.')
    for path in paths:
        if os.path.exists(path):
            os.remove(path)
            say('{} removed.'.format(path))
    return Outcome.SUCCESS


@task(name='enable', aliases=['fede'])
def enable_task(c, site_dir=DEFAULT_SITE, yes=False, legacy=False):
    """
    Enable front-end development mode.
    :param site_dir: The Drupal site directory name.
    :param yes: Do not ask for a confirmation.
    :param legacy: Drupal 7 mode, also used when the Drupal root is a
    Drupal 7 installation.
    """
    project = Project.from_context(c)
    return exit_with(enable(project, site_dir, yes,
                            legacy or project.is_drupal7()))


@task(name='disable', aliases=['fedd'])
def disable_task(c, site_dir=DEFAULT_SITE, yes=False):
    """
    Disable front-end development mode.
    :param site_dir: The Drupal site directory name.
    :param yes: Do not ask for a confirmation.
    """
    return exit_with(disable(Project.from_context(c), site_dir, yes))
