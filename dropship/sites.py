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
Access to the per-site configuration file (``.sites.config.yml``).

The file maps a site name to a bag of settings::

    default:
      database_s3_bucket: example-db-dumps
      theme_build:
        - theme_path: web/themes/custom/%SITE
          theme_build_commands:
            - npm ci
            - npm run build
    intranet:
      database_s3_key_prefix_string: intranet/

The file is read on every call, there is no cache and no locking.
"""
import os

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .exceptions import (ConfigKeyMissing, ConfigNotFound, ConfigParseError,
                         SiteNotFound)

DEFAULT_SITE = 'default'

# Replaced by the real site name in values inherited from the default site.
SITE_PLACEHOLDER = '%SITE'


def is_empty(value):
    return value is None or (isinstance(value, (str, list, dict))
                             and len(value) == 0)


def replace_placeholder(value, site_name):
    """
    Replace the site placeholder in a value, walking lists and mappings.
    :param value: the configuration value.
    :param site_name: the name replacing the placeholder.
    """
    if isinstance(value, str):
        return value.replace(SITE_PLACEHOLDER, site_name)
    if isinstance(value, list):
        return [replace_placeholder(item, site_name) for item in value]
    if isinstance(value, dict):
        return {key: replace_placeholder(item, site_name)
                for key, item in value.items()}
    return value


class SiteConfigStore(object):

    def __init__(self, path):
        self.path = str(path)

    def load_all(self):
        """
        Load configuration for all sites.
        :return: a dict of site name to site configuration, in file order.
        """
        if not os.path.exists(self.path):
            raise ConfigNotFound('{} not found.'.format(self.path))
        with open(self.path, 'r') as stream:
            try:
                data = YAML(typ='safe').load(stream)
            except YAMLError as e:
                raise ConfigParseError('{} could not be parsed: {}'.format(
                    self.path, e))
        if not isinstance(data, dict):
            raise ConfigParseError('{} must contain a mapping of site names '
                                   'to settings.'.format(self.path))
        return data

    def get(self, site_name=DEFAULT_SITE):
        site_config = self.load_all().get(site_name)
        if not isinstance(site_config, dict):
            raise SiteNotFound(site_name)
        return site_config

    def get_required_item(self, key, site_name=DEFAULT_SITE):
        value = self.get(site_name).get(key)
        if is_empty(value):
            raise ConfigKeyMissing(key, site_name)
        return value

    def get_optional_item(self, key, site_name=DEFAULT_SITE, default=None):
        site_config = self.load_all().get(site_name)
        if not isinstance(site_config, dict):
            return default
        value = site_config.get(key)
        return default if is_empty(value) else value

    def get_item_with_default_fallback(self, key, site_name=DEFAULT_SITE):
        """
        Get a site value, falling back to the value of the default site.

        The site placeholder in the resolved value is replaced with the
        requested site name.
        """
        value = self.get_optional_item(key, site_name)
        if value is None and site_name != DEFAULT_SITE:
            value = self.get_optional_item(key, DEFAULT_SITE)
        if value is None:
            raise ConfigKeyMissing(key, site_name)
        return replace_placeholder(value, site_name)

    def list_site_names(self):
        return list(self.load_all().keys())

    def write(self, sites_config):
        """
        Write the whole configuration back, sorted by site name.

        The file is overwritten in place, the write is not atomic.
        """
        yaml = YAML()
        yaml.default_flow_style = False
        ordered = {key: sites_config[key] for key in sorted(sites_config)}
        with open(self.path, 'w') as stream:
            yaml.dump(ordered, stream)
