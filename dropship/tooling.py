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
from ruamel.yaml import YAML

from .console import say, title, yell
from .core import Project, Step, require_setting, run_plan
from .exceptions import ConfigNotFound, PhpVersionUnchanged

COMPOSER_FILENAME = 'composer.json'


def replace_in_file(path, search, replace):
    with open(path, 'r') as stream:
        content = stream.read()
    with open(path, 'w') as stream:
        stream.write(content.replace(search, replace))


def update_project_config(path, key, value):
    """
    Set a value in the dropship section of the project configuration file,
    keeping its comments and layout.
    """
    yaml = YAML()
    data = None
    if os.path.exists(path):
        with open(path, 'r') as stream:
            data = yaml.load(stream)
    if not isinstance(data, dict):
        data = {}
    if not isinstance(data.get('dropship'), dict):
        data['dropship'] = {}
    data['dropship'][key] = value
    with open(path, 'w') as stream:
        yaml.dump(data, stream)


def composer_update_plan(directory):
    return [
        Step('composer update --lock', directory=directory),
        Step('composer validate', directory=directory),
    ]


def update_php_version(c, project, version, skip_composer_update=False):
    """
    Replace the PHP version in the configured files.
    :param version: the new PHP version, e.g. "8.2".
    :param skip_composer_update: do not refresh composer.lock when a
    composer.json file changed.
    :return: the list of composer results.
    """
    title('updating PHP version.')
    current = str(require_setting(project.settings, 'php_current_version',
                                  (str, int, float)))
    version = str(version)
    say('Current PHP version: {}'.format(current))
    say('New PHP version: {}'.format(version))
    if current == version:
        raise PhpVersionUnchanged('New PHP version matches existing version: '
                                  '{}.'.format(current))
    paths = [project.path(relative_path) for relative_path in require_setting(
        project.settings, 'php_version_config_paths', list)]
    for path in paths:
        if not os.path.isfile(path):
            raise ConfigNotFound('PHP version file {} not found.'.format(path))

    results = []
    for path in paths:
        replace_in_file(path, current, version)
        if os.path.basename(path) != COMPOSER_FILENAME:
            continue
        say('Change to {} detected.'.format(COMPOSER_FILENAME))
        if skip_composer_update:
            yell("'composer update' skipped.")
            continue
        yell('Updating composer.lock file.')
        results.extend(run_plan(c, composer_update_plan(
            os.path.dirname(path))))

    update_project_config(project.path(project.settings.project_config_file),
                          'php_current_version', version)
    yell('PHP version updated from {} to {}.'.format(current, version))
    return results


@task(name='update-php-version')
def update_php_version_task(c, version, skip_composer_update=False):
    """
    Update the PHP version in the tooling configuration files.
    :param version: The new PHP version.
    :param skip_composer_update: Skip composer update.
    """
    return update_php_version(c, Project.from_context(c), version,
                              skip_composer_update)
