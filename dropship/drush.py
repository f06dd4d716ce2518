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
import json

from fabric import task

from .console import say, section, title
from .core import Project, Step, run_plan, run_step, split_list
from .environments import resolve_login_link_command
from .exceptions import (CommandFailed, ConfigParseError, DriftDetected,
                         StatusReportFailed)
from .notify import Notifier
from .sentry import CronMonitor
from .sites import DEFAULT_SITE

CONFIG_CHECK_NAME = 'ci/configuration-check'
STATUS_REPORT_CHECK_NAME = 'ci/drupal-status-report'


def parse_json_output(output):
    """
    Parse the JSON printed by a drush command. No output means no entries.
    """
    output = output.strip()
    if not output:
        return []
    try:
        return json.loads(output)
    except ValueError as e:
        raise ConfigParseError('Unexpected drush output: {}'.format(e))


def has_entries(payload):
    return not isinstance(payload, (list, dict)) or len(payload) > 0


def validate_config(c, project, site_dirs=(DEFAULT_SITE,), notifier=None):
    """
    Check the active configuration of each site matches the exported one.
    :param notifier: a Notifier to report a GitHub status check, or None.
    """
    if notifier:
        notifier.set_status_pending(CONFIG_CHECK_NAME)
    for site_dir in site_dirs:
        directory = project.site_dir(site_dir)
        # Clearing the "config" cache bin makes the status accurate.
        # https://github.com/drush-ops/drush/pull/3861#issuecomment-453767694
        run_step(c, Step('{} cache:clear bin config'.format(project.drush),
                         directory=directory))
        result = run_step(c, Step(
            '{} config:status --format=json'.format(project.drush),
            directory=directory, capture=True))
        if has_entries(parse_json_output(result.stdout)):
            say(result.stdout.strip())
            if notifier:
                notifier.set_status_error(
                    CONFIG_CHECK_NAME, 'Drupal config validation failed!')
            raise DriftDetected('Drupal database configuration does not match '
                                'the tracked file system configuration.')
    say('Drupal database configuration matches the tracked file system '
        'configuration.')
    if notifier:
        notifier.set_status_success(CONFIG_CHECK_NAME,
                                    'Drupal config validation passed!')


def status_report_command(project, site_dir, severity):
    command = '{} status-report --format=json --severity={}'.format(
        project.drush, severity)
    ignore = project.site_setting('drupal_status_report_ignore_checks',
                                  site_dir)
    if ignore:
        command += ' --ignore={}'.format(','.join(ignore))
    return command


def validate_status_report(c, project, site_dirs=(DEFAULT_SITE,), severity=1,
                           notifier=None):
    """
    Check the status report of each site shows nothing above a severity.
    :param severity: the minimum severity to show, 1 is warning.
    """
    if notifier:
        notifier.set_status_pending(STATUS_REPORT_CHECK_NAME)
    for site_dir in site_dirs:
        result = run_step(c, Step(
            status_report_command(project, site_dir, severity),
            directory=project.site_dir(site_dir), capture=True))
        if has_entries(parse_json_output(result.stdout)):
            say(result.stdout.strip())
            if notifier:
                notifier.set_status_error(
                    STATUS_REPORT_CHECK_NAME,
                    'Drupal status report shows one or more unexpected '
                    'warnings or errors.')
            raise StatusReportFailed('Drupal status report shows one or more '
                                     'unexpected warnings or errors!')
    say('Drupal status report(s) show no unexpected warnings or errors.')
    if notifier:
        notifier.set_status_success(
            STATUS_REPORT_CHECK_NAME,
            'Drupal status report shows no unexpected warnings or errors.')


def login_link_plan(project, environment_type, site_dir=DEFAULT_SITE):
    uid = project.site_setting('drupal_admin_uid', site_dir)
    return [Step(resolve_login_link_command(environment_type, site_dir, uid),
                 directory=project.site_dir(site_dir))]


@task(name='validate-config', aliases=['vdc'])
def validate_config_status(c, site_dirs=DEFAULT_SITE, set_pr_status=False):
    """
    Validate Drupal configuration status.
    :param site_dirs: A comma separated list of Drupal site directories.
    :param set_pr_status: Set the GitHub status check of the pull request.
    """
    title('validate drupal configuration.')
    project = Project.from_context(c)
    notifier = Notifier(project.settings) if set_pr_status else None
    validate_config(c, project, split_list(site_dirs), notifier)


@task
def status_report(c, site_dirs=DEFAULT_SITE, severity=1, set_pr_status=False):
    """
    Validate the Drupal status report.
    :param site_dirs: A comma separated list of Drupal site directories.
    :param severity: The minimum severity level to show, 1 is warning.
    :param set_pr_status: Set the GitHub status check of the pull request.
    """
    title('drupal status report.')
    project = Project.from_context(c)
    notifier = Notifier(project.settings) if set_pr_status else None
    validate_status_report(c, project, split_list(site_dirs), int(severity),
                           notifier)


@task(aliases=['uli'])
def login_link(c, environment_type=None, site_dir=DEFAULT_SITE):
    """
    Generate a one-time login link.
    :param environment_type: The local development environment: ddev, lando.
    :param site_dir: The Drupal site directory name.
    """
    section('create login link.')
    project = Project.from_context(c)
    environment_type = environment_type or project.settings.environment_type
    return run_plan(c, login_link_plan(project, environment_type, site_dir))


def run_cron(c, project, site_name=DEFAULT_SITE, monitor=None):
    """
    Run Drupal cron on a site.
    :param monitor: a CronMonitor receiving the check-ins, or None.
    """
    step = Step('{} cron --yes'.format(project.drush),
                directory=project.site_dir(site_name))
    if monitor:
        monitor.started()
    try:
        result = run_step(c, step)
    except CommandFailed:
        if monitor:
            monitor.failed()
        raise
    if monitor:
        monitor.completed()
    return result


@task
def cron(c, site_name=DEFAULT_SITE, skip_sentry=False):
    """
    Run Drupal cron, reporting check-ins to Sentry.
    :param site_name: The Drupal site directory name.
    :param skip_sentry: Do not report the run to Sentry.
    """
    project = Project.from_context(c)
    monitor = None if skip_sentry else CronMonitor(project.settings)
    return run_cron(c, project, site_name, monitor)
