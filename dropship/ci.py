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

from .console import title
from .core import Project, Step, run_plan, split_list
from .exceptions import DropshipError
from .sites import DEFAULT_SITE

CODER_SNIFFER_PATH = 'vendor/drupal/coder/coder_sniffer'
SKIPPABLE_PASSES = ('php-compatibility', 'twig')


def _bin(project, name):
    return os.path.join(project.settings.vendor_dir, 'bin', name)


def _joined(values, separator=','):
    if isinstance(values, str):
        return values
    return separator.join(values)


def unit_tests_plan(project):
    return [Step('{} --debug --verbose'.format(_bin(project, 'phpunit')),
                 directory=project.root, env={'XDEBUG_MODE': 'coverage'})]


def static_analysis_plan(project):
    paths = _joined(project.settings.custom_code_paths, ' ')
    return [Step('{} analyse --memory-limit=1G {}'.format(
        _bin(project, 'phpstan'), paths), directory=project.root)]


def coding_standards_plan(project, site_name=DEFAULT_SITE, fix=False,
                          skip=()):
    """
    Build the coding standards steps.

    The PHP code is checked (or fixed) against the configured standards,
    then checked for compatibility with the minimum PHP version, then the
    Twig templates are linted when paths are configured.
    :param fix: run the fixers instead of the checkers.
    :param skip: passes to leave out, among php-compatibility and twig.
    """
    def setting(key):
        return project.site_setting(key, site_name)

    skip = set(split_list(skip))
    unknown = skip.difference(SKIPPABLE_PASSES)
    if unknown:
        raise DropshipError('Unknown pass(es) to skip: {}.'.format(
            ', '.join(sorted(unknown))))

    phpcs = _bin(project, 'phpcs')
    tool = _bin(project, 'phpcbf') if fix else phpcs
    extensions = _joined(setting('phpcs_check_extensions'))
    ignore = _joined(setting('phpcs_ignore_paths'))
    paths = _joined(project.settings.custom_code_paths, ' ')

    commands = [
        '{} --config-set installed_paths {}'.format(tool, CODER_SNIFFER_PATH),
        '{} --standard={} --extensions={} --ignore={} {}'.format(
            tool, _joined(setting('phpcs_standards')), extensions, ignore,
            paths),
    ]
    if 'php-compatibility' not in skip:
        commands.append(
            '{} --standard=PHPCompatibility --runtime-set testVersion {}- '
            '--extensions={} --ignore={} {}'.format(
                phpcs, setting('php_current_version'), extensions, ignore,
                paths))
    twig_paths = setting('twig_lint_paths')
    if twig_paths and 'twig' not in skip:
        commands.append('{} lint{} {}'.format(
            _bin(project, 'twig-cs-fixer'), ' --fix' if fix else '',
            _joined(twig_paths, ' ')))
    return [Step(command, directory=project.root) for command in commands]


@task
def unit_tests(c):
    """
    Run the PHPUnit tests with code coverage.
    """
    title('unit tests.')
    return run_plan(c, unit_tests_plan(Project.from_context(c)))


@task
def static_analysis(c):
    """
    Run the phpstan static analysis over the custom code.
    """
    title('static analysis.')
    return run_plan(c, static_analysis_plan(Project.from_context(c)))


@task
def check_coding_standards(c, site_name=DEFAULT_SITE, skip=''):
    """
    Check the custom code against the coding standards.
    :param site_name: The site whose configuration overrides the defaults.
    :param skip: Comma separated passes to skip: php-compatibility, twig.
    """
    title('check coding standards.')
    return run_plan(c, coding_standards_plan(Project.from_context(c),
                                             site_name, skip=skip))


@task
def fix_coding_standards(c, site_name=DEFAULT_SITE, skip=''):
    """
    Fix coding standards violations where possible.
    :param site_name: The site whose configuration overrides the defaults.
    :param skip: Comma separated passes to skip: php-compatibility, twig.
    """
    title('fix coding standards.')
    return run_plan(c, coding_standards_plan(Project.from_context(c),
                                             site_name, fix=True, skip=skip))
