import dataclasses
import os

import pytest
from ruamel.yaml import YAML

from conftest import FakeContext, FakeS3Client
from dropship import __version__, database, devmode, dev_refresh_workflow, ns
from dropship.core import Outcome
from dropship.exceptions import ConfigNotFound, PhpVersionUnchanged
from dropship.tooling import update_php_version, update_project_config

DDEV_CONFIG = 'name: website\nphp_version: "8.1"\n'
COMPOSER_JSON = '{"require": {"php": ">=8.1"}}\n'


@pytest.fixture
def tooling_project(project):
    os.makedirs(project.path('.ddev'))
    with open(project.path('.ddev', 'config.yaml'), 'w') as stream:
        stream.write(DDEV_CONFIG)
    with open(project.path('composer.json'), 'w') as stream:
        stream.write(COMPOSER_JSON)
    with open(project.path('dropship.yaml'), 'w') as stream:
        stream.write('# Project settings\ndropship:\n'
                     '  php_current_version: "8.1"\n  drupal_root: web\n')
    project.settings = dataclasses.replace(
        project.settings, php_current_version='8.1',
        php_version_config_paths=['.ddev/config.yaml', 'composer.json'])
    return project


def read(project, *parts):
    with open(project.path(*parts)) as stream:
        return stream.read()


def test_update_php_version(tooling_project):
    c = FakeContext()
    update_php_version(c, tooling_project, '8.3')
    assert 'php_version: "8.3"' in read(tooling_project, '.ddev',
                                        'config.yaml')
    assert '">=8.3"' in read(tooling_project, 'composer.json')
    assert c.commands == ['composer update --lock', 'composer validate']
    assert c.calls[0][1] == tooling_project.root

    content = read(tooling_project, 'dropship.yaml')
    assert content.startswith('# Project settings')
    assert YAML(typ='safe').load(content)['dropship'] == \
        {'php_current_version': '8.3', 'drupal_root': 'web'}


def test_update_php_version_skips_composer(tooling_project):
    c = FakeContext()
    update_php_version(c, tooling_project, '8.2', skip_composer_update=True)
    assert c.commands == []
    assert '">=8.2"' in read(tooling_project, 'composer.json')


def test_update_php_version_unchanged(tooling_project):
    with pytest.raises(PhpVersionUnchanged):
        update_php_version(FakeContext(), tooling_project, '8.1')
    assert read(tooling_project, 'composer.json') == COMPOSER_JSON


def test_update_php_version_missing_file_changes_nothing(tooling_project):
    tooling_project.settings = dataclasses.replace(
        tooling_project.settings,
        php_version_config_paths=['composer.json', '.lando.yml'])
    c = FakeContext()
    with pytest.raises(ConfigNotFound) as e:
        update_php_version(c, tooling_project, '8.3')
    assert e.value.message == 'PHP version file {} not found.'.format(
        tooling_project.path('.lando.yml'))
    assert read(tooling_project, 'composer.json') == COMPOSER_JSON
    assert c.commands == []


def test_update_project_config_creates_the_file(tmp_path):
    path = str(tmp_path / 'dropship.yaml')
    update_project_config(path, 'php_current_version', '8.2')
    with open(path) as stream:
        assert YAML(typ='safe').load(stream) == \
            {'dropship': {'php_current_version': '8.2'}}


def test_dev_refresh_workflow(project, write_sites, monkeypatch, tmp_path):
    write_sites("""\
default:
  database_s3_bucket: dumps
  theme_build:
    - theme_path: web/themes/custom/site
      theme_build_commands: [npm run build]
""")
    client = FakeS3Client({'dumps': [{'Key': 'db.sql.gz',
                                      'LastModified': 1}]})
    credentials = tmp_path / 'credentials'
    credentials.write_text('[default]\n')
    monkeypatch.setattr(database, 'aws_credentials_path',
                        lambda: str(credentials))
    monkeypatch.setattr(database.boto3, 'client',
                        lambda *args, **kwargs: client)
    enabled = []
    monkeypatch.setattr(devmode, 'enable', lambda *args, **kwargs:
                        enabled.append(kwargs) or Outcome.SUCCESS)

    c = FakeContext()
    outcome = dev_refresh_workflow(c, project, 'ddev', start=True)

    assert outcome is Outcome.SUCCESS
    assert enabled == [{'yes': True, 'legacy': False}]
    assert c.commands == [
        'composer install',
        'ddev start',
        'npm run build',
        'ddev import-db --target-db=db --src={}'.format(
            project.path('db.sql.gz')),
        'ddev drush @default.ddev deploy --yes',
        'ddev drush @default.ddev config:import --yes',
        'ddev drush @default.ddev user:login --uid=1',
    ]


def test_namespace():
    assert __version__
    assert set(ns.collections) == {'ci', 'database', 'deploy', 'devmode',
                                   'drush', 'notify', 'sentry', 'theme',
                                   'tooling'}
    assert ns.task_names['dev-refresh'] == ['magic']
    assert 'fede' in ns.collections['devmode'].task_names['enable']
    assert ns.collections['drush'].task_names['validate-config'] == ['vdc']
