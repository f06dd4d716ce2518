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

from .console import section, title, warn
from .core import Project, Step, run_plan
from .exceptions import ConfigKeyMissing, ConfigTypeError
from .sites import DEFAULT_SITE


def theme_build_plan(project, site_name=DEFAULT_SITE):
    """
    Build the steps compiling the themes of a site.

    Themes are declared with the ``theme_build`` key of the sites
    configuration, falling back to the default site.
    :return: a list of Step, empty when nothing is configured.
    """
    try:
        themes = project.sites.get_item_with_default_fallback('theme_build',
                                                              site_name)
    except ConfigKeyMissing:
        warn("'{}' theme_build configuration not set.".format(site_name))
        return []
    if not isinstance(themes, list):
        raise ConfigTypeError("theme_build for '{}' must be a list of themes."
                              "".format(site_name))
    plan = []
    for theme in themes:
        theme_path = project.path(theme['theme_path'])
        for command in theme.get('theme_build_commands') or []:
            plan.append(Step(command, directory=theme_path))
    return plan


@task
def build(c, site_name=DEFAULT_SITE):
    """
    Build one or more themes configured with the theme_build key.
    :param site_name: the Drupal site name.
    """
    title('theme build')
    plan = theme_build_plan(Project.from_context(c), site_name)
    current = None
    results = []
    for step in plan:
        if step.directory != current:
            current = step.directory
            section('building theme at {}'.format(current))
        results.extend(run_plan(c, [step]))
    return results
