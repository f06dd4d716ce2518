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
Best-effort notifications: Slack webhook, GitHub commit statuses and pull
request comments.

Nothing here raises on a network failure, a warning is printed and the
calling task goes on. The environment variables are those set by Tugboat
previews, see https://docs.tugboatqa.com/reference/environment-variables/
"""
import os
from dataclasses import dataclass

import requests
from fabric import task

from .console import say, warn, yell
from .core import Outcome, Project

STATUS_PENDING = 'pending'
STATUS_SUCCESS = 'success'
STATUS_ERROR = 'error'


@dataclass(frozen=True)
class NotificationContext:
    preview_id: str = None
    base_preview_id: str = None
    service_url: str = None
    repo: str = None
    github_owner: str = None
    github_repo: str = None
    github_pr: str = None
    preview_sha: str = None
    github_access_token: str = None
    github_comment_token: str = None
    slack_webhook_url: str = None

    @classmethod
    def from_environ(cls, environ=None):
        environ = os.environ if environ is None else environ
        return cls(
            preview_id=environ.get('TUGBOAT_PREVIEW_ID'),
            base_preview_id=environ.get('TUGBOAT_BASE_PREVIEW_ID'),
            service_url=environ.get('TUGBOAT_SERVICE_URL'),
            repo=environ.get('TUGBOAT_REPO'),
            github_owner=environ.get('TUGBOAT_GITHUB_OWNER'),
            github_repo=environ.get('TUGBOAT_GITHUB_REPO'),
            github_pr=environ.get('TUGBOAT_GITHUB_PR'),
            preview_sha=environ.get('TUGBOAT_PREVIEW_SHA'),
            github_access_token=environ.get('GITHUB_ACCESS_TOKEN'),
            github_comment_token=environ.get('GITHUB_COMMENT_TOKEN'),
            slack_webhook_url=environ.get('SLACK_WEBHOOK_URL'),
        )

    @property
    def is_preview(self):
        return self.preview_id is not None

    @property
    def is_base_preview(self):
        # An empty preview id never counts as the base preview.
        return bool(self.preview_id) and \
            self.preview_id == self.base_preview_id

    @property
    def is_pull_request(self):
        return bool(self.github_pr)


class Notifier(object):
    """
    Send notifications about a task outcome.
    :param settings: the project Settings (URLs and timeout).
    :param session: a requests session, mostly useful for tests.
    :param environ: the environment mapping, defaults to os.environ.
    """

    def __init__(self, settings, session=None, environ=None):
        self.settings = settings
        self.session = session or requests.Session()
        self.environ = environ

    @property
    def context(self):
        # Read on every use, tasks may run long enough for it to change.
        return NotificationContext.from_environ(self.environ)

    def dashboard_url(self):
        return '{}/{}'.format(self.settings.tugboat_dashboard_url,
                              self.context.preview_id or '')

    def _github_headers(self, token):
        return {
            'Accept': 'application/vnd.github+json',
            'Authorization': 'Bearer {}'.format(token),
            'X-GitHub-Api-Version': '2022-11-28',
        }

    def notify_chat(self, username, text):
        """
        Post a message to the Slack webhook.
        :return: True if the message was sent.
        """
        webhook_url = self.context.slack_webhook_url
        if not webhook_url:
            yell('Missing Slack Webhook URL from the "SLACK_WEBHOOK_URL" '
                 'environment variable.')
            return False
        try:
            response = self.session.post(
                webhook_url, json={'username': username, 'text': text},
                timeout=self.settings.http_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            warn('Slack webhook request failed: {}'.format(e))
            return False
        return True

    def notify_on_failed_base_preview(self, outcome, force=False):
        """
        Notify Slack when the base preview failed to build.
        :param outcome: the Outcome of the build.
        :param force: notify even outside a base preview or on success.
        """
        if not self.context.is_base_preview and not force:
            return False
        if outcome is Outcome.SUCCESS and not force:
            say('Skipping Slack notification since all tasks completed '
                'successfully.')
            return False
        text = 'Tugboat <{}|Base Preview> failed to build for *{}*.'.format(
            self.dashboard_url(), self.context.repo)
        return self.notify_chat('Tugboat', text)

    def set_remote_status(self, state, check_name, description=None,
                          target_url=None):
        """
        Set a commit status on the pull request of the current preview.
        :param state: one of pending, success or error.
        :param check_name: the status context, e.g. ci/configuration-check.
        :param description: text shown next to the check.
        :param target_url: the link of the check, the preview dashboard by
        default.
        """
        context = self.context
        url = '{}/repos/{}/{}/statuses/{}'.format(
            self.settings.github_api_url, context.github_owner,
            context.github_repo, context.preview_sha)
        body = {
            'state': state,
            'context': check_name,
            'target_url': target_url or self.dashboard_url(),
        }
        if description:
            body['description'] = description
        try:
            response = self.session.post(
                url, json=body, timeout=self.settings.http_timeout,
                headers=self._github_headers(context.github_access_token))
            response.raise_for_status()
        except requests.RequestException as e:
            yell('GitHub status request failed.')
            warn(str(e))
            return False
        return True

    def set_status_pending(self, check_name):
        yell('Setting pending status on GitHub check: {}'.format(check_name))
        return self.set_remote_status(STATUS_PENDING, check_name)

    def set_status_success(self, check_name, description, target_url=None):
        yell('Setting success status on GitHub check: {}'.format(check_name))
        say(description)
        return self.set_remote_status(STATUS_SUCCESS, check_name, description,
                                      target_url)

    def set_status_error(self, check_name, description, target_url=None):
        yell('Setting failure status on GitHub check: {}'.format(check_name))
        say(description)
        return self.set_remote_status(STATUS_ERROR, check_name, description,
                                      target_url)

    def comment_on_pull_request(self, text):
        """
        Add a warning comment to the pull request of the current preview.
        """
        context = self.context
        if not (context.github_owner and context.github_repo
                and context.is_pull_request):
            yell('Missing GitHub environment variables.')
            return False
        if not context.github_comment_token:
            yell('Missing GitHub token from the "GITHUB_COMMENT_TOKEN" '
                 'environment variable.')
            return False
        url = '{}/repos/{}/{}/issues/{}/comments'.format(
            self.settings.github_api_url, context.github_owner,
            context.github_repo, context.github_pr)
        try:
            response = self.session.post(
                url, json={'body': '⚠️ {}'.format(text)},
                timeout=self.settings.http_timeout,
                headers=self._github_headers(context.github_comment_token))
            response.raise_for_status()
        except requests.RequestException:
            yell('GitHub API request failed.')
            return False
        return True


@task
def slack(c, text, username='Tugboat'):
    """
    Send a message to the Slack webhook set in SLACK_WEBHOOK_URL.
    :param text: The message.
    :param username: The name the message is posted as.
    """
    Notifier(Project.from_context(c).settings).notify_chat(username, text)


@task
def base_preview_failed(c, force=False):
    """
    Tell Slack the Tugboat base preview failed to build.
    :param force: Notify even outside a base preview.
    """
    Notifier(Project.from_context(c).settings).notify_on_failed_base_preview(
        Outcome.FAILED, force=force)


@task
def pr_comment(c, text, force=False):
    """
    Comment on the pull request of the current Tugboat preview.
    :param text: The comment.
    :param force: Comment even outside a Tugboat preview.
    """
    notifier = Notifier(Project.from_context(c).settings)
    if not notifier.context.is_preview and not force:
        warn('Not in a Tugboat preview, no comment posted.')
        return
    notifier.comment_on_pull_request(text)
