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

import requests
import sentry_sdk
from fabric import task
from sentry_sdk.crons import capture_checkin
from sentry_sdk.crons.consts import MonitorStatus

from .console import say, title, warn, yell
from .core import Project


class CronMonitor(object):
    """
    Report the start and the end of a job to a Sentry cron monitor.

    Reporting is skipped with a warning when SENTRY_DSN is not set.
    """

    def __init__(self, settings, dsn=None):
        self.slug = settings.sentry_cron_monitor_slug
        self.dsn = dsn if dsn is not None else os.environ.get('SENTRY_DSN')
        self.check_in_id = None
        self.enabled = bool(self.dsn)
        if self.enabled:
            sentry_sdk.init(dsn=self.dsn)
        else:
            warn('SENTRY_DSN is not set, cron run not reported to Sentry.')

    def _check_in(self, status):
        if not self.enabled:
            return None
        return capture_checkin(monitor_slug=self.slug,
                               check_in_id=self.check_in_id, status=status)

    def started(self):
        self.check_in_id = self._check_in(MonitorStatus.IN_PROGRESS)

    def completed(self):
        self._check_in(MonitorStatus.OK)
        self._flush()

    def failed(self):
        self._check_in(MonitorStatus.ERROR)
        self._flush()

    def _flush(self):
        if self.enabled:
            sentry_sdk.flush()


@task(aliases=['tag'])
def tag_release(c, webhook_url, release_id):
    """
    Tag a release in Sentry through a release webhook.
    :param webhook_url: The Sentry release webhook URL.
    :param release_id: The version to tag the release with.
    """
    title('tag release in sentry.')
    settings = Project.from_context(c).settings
    try:
        response = requests.post(webhook_url, json={'version': release_id},
                                 timeout=settings.http_timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        yell('Sentry release request failed.')
        warn(str(e))
        return False
    say('Release {} tagged in Sentry.'.format(release_id))
    return True
