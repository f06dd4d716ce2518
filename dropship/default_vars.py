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
Default project settings.

Every value can be overridden in a ``dropship.yaml`` file placed at the root
of the Drupal project, under a ``dropship:`` section, or with a
``DROPSHIP_DROPSHIP_<KEY>`` environment variable.
"""
import copy
from dataclasses import asdict, dataclass, field, fields

from fabric import Config as FabricConfig
from invoke.config import merge_dicts


@dataclass
class Settings:

    # Project layout, relative to the project root.
    drupal_root: str = 'web'
    vendor_dir: str = 'vendor'
    sites_config_file: str = '.sites.config.yml'
    project_config_file: str = 'dropship.yaml'

    # Local development environment: ddev or lando.
    environment_type: str = 'ddev'

    # Database dumps
    # Region used when a site does not set database_s3_region.
    s3_default_region: str = 'us-east-1'
    # Database server used by the preview (Tugboat) bulk refresh.
    preview_db_host: str = 'mariadb'
    preview_db_user: str = 'tugboat'
    preview_db_password: str = 'tugboat'
    # Database name used for the "default" site.
    preview_db_name: str = 'tugboat'

    # Continuous integration
    custom_code_paths: list = field(default_factory=lambda: [
        'web/modules/custom', 'web/themes/custom'])
    phpcs_standards: list = field(default_factory=lambda: [
        'Drupal', 'DrupalPractice'])
    phpcs_check_extensions: list = field(default_factory=lambda: [
        'php', 'module', 'inc', 'install', 'test', 'profile', 'theme',
        'info', 'yml'])
    phpcs_ignore_paths: list = field(default_factory=lambda: [
        '*/node_modules/*', '*/vendor/*'])
    # Minimum PHP version checked by the PHPCompatibility pass.
    php_current_version: str = '8.1'
    # Files where tooling.update-php-version replaces the PHP version.
    # Example: ['.lando.yml', '.ddev/config.yaml', 'composer.json']
    php_version_config_paths: list = field(default_factory=list)
    # Twig templates linted after the PHP passes. Empty means skip.
    twig_lint_paths: list = field(default_factory=list)

    # Status report checks that are expected to fail, e.g. ['update_core'].
    drupal_status_report_ignore_checks: list = field(default_factory=list)
    # User id used by the one-time login link.
    drupal_admin_uid: int = 1

    # Notifications
    http_timeout: int = 5
    github_api_url: str = 'https://api.github.com'
    tugboat_dashboard_url: str = 'https://dashboard.tugboatqa.com'
    sentry_cron_monitor_slug: str = 'drupal-cron'

    @classmethod
    def from_mapping(cls, data):
        """
        Build settings from a configuration mapping, ignoring unknown keys.
        :param data: mapping of setting names to values.
        """
        known = {f.name for f in fields(cls)}
        return cls(**{key: copy.deepcopy(value) for key, value in data.items()
                      if key in known})


defaults = asdict(Settings())


class Config(FabricConfig):
    """
    Fabric configuration reading ``dropship.yaml`` files and ``DROPSHIP_``
    environment variables.
    """
    prefix = 'dropship'

    @staticmethod
    def global_defaults():
        return merge_dicts(FabricConfig.global_defaults(),
                           {'dropship': copy.deepcopy(defaults)})
