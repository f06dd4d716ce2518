import os
from datetime import datetime

import pytest
from botocore.exceptions import ClientError
from invoke import Result

from conftest import FakeContext, FakeS3Client
from dropship import database
from dropship.core import BatchResult, Outcome
from dropship.exceptions import (CommandFailed, ConfigKeyMissing,
                                 DropshipError, NoDatabaseDumps)

OLD = datetime(2024, 1, 1)
NEW = datetime(2024, 6, 1)

SITES = """\
default:
  database_s3_bucket: main-dumps
blog:
  database_s3_region: ca-central-1
shop:
  database_s3_bucket: shop-dumps
  database_s3_key_prefix_string: prod/
"""


def dump(key, modified):
    return {'Key': key, 'LastModified': modified}


@pytest.fixture
def client():
    return FakeS3Client({
        'main-dumps': [dump('main-old.sql.gz', OLD),
                       dump('main-new.sql.gz', NEW)],
        'shop-dumps': [dump('prod/shop.sql.gz', OLD),
                       dump('dev/shop.sql.gz', NEW)],
    })


def test_latest_object_breaks_ties_by_key():
    objects = [dump('b.sql.gz', NEW), dump('c.sql.gz', NEW),
               dump('a.sql.gz', NEW), dump('z.sql.gz', OLD)]
    assert database.latest_object(objects)['Key'] == 'c.sql.gz'
    assert database.latest_object(list(reversed(objects)))['Key'] == \
        'c.sql.gz'


def test_sanitize_filename():
    assert database.sanitize_filename('prod/db:2024?.sql.gz') == \
        'prod_db_2024_.sql.gz'


def test_download_latest_dump(project, write_sites, client):
    write_sites(SITES)
    path = database.download_latest_dump(project, 'default', client)
    assert path == project.path('main-new.sql.gz')
    assert os.path.exists(path)
    assert client.downloads == [('main-dumps', 'main-new.sql.gz', path)]


def test_download_uses_prefix_and_skips_existing_file(project, write_sites,
                                                      client):
    write_sites(SITES)
    path = database.download_latest_dump(project, 'shop', client)
    assert path == project.path('prod_shop.sql.gz')
    database.download_latest_dump(project, 'shop', client)
    assert len(client.downloads) == 1


def test_download_without_dumps(project, write_sites):
    write_sites(SITES)
    with pytest.raises(NoDatabaseDumps):
        database.download_latest_dump(project, 'default', FakeS3Client({}))


def test_download_without_bucket(project, write_sites, client):
    write_sites(SITES)
    with pytest.raises(ConfigKeyMissing):
        database.download_latest_dump(project, 'blog', client)


def test_region_defaults_to_settings(project, write_sites):
    write_sites(SITES)
    assert database.s3_region_for_site(project.sites, 'blog', 'us-east-1') \
        == 'ca-central-1'
    assert database.s3_region_for_site(project.sites, 'shop', 'us-east-1') \
        == 'us-east-1'


def test_refresh_with_given_dump_keeps_it(project, tmp_path):
    db_path = tmp_path / 'given.sql.gz'
    db_path.write_bytes(b'')
    c = FakeContext()
    results = database.refresh(c, project, 'ddev', 'default', str(db_path))
    assert c.commands == [
        'ddev import-db --target-db=db --src={}'.format(db_path),
        'ddev drush @default.ddev deploy --yes',
        'ddev drush @default.ddev config:import --yes',
    ]
    assert c.calls[0][1] == project.root
    assert c.calls[1][1] == project.site_dir('default')
    assert len(results) == 3
    assert db_path.exists()


def test_refresh_deletes_downloaded_dump(project, write_sites, client):
    write_sites(SITES)
    c = FakeContext()
    database.refresh(c, project, 'lando', 'shop', client=client)
    assert c.commands[0] == 'lando db-import {} --host=shop'.format(
        project.path('prod_shop.sql.gz'))
    assert not os.path.exists(project.path('prod_shop.sql.gz'))


def test_refresh_cancelled_when_credentials_declined(project, write_sites,
                                                     monkeypatch, tmp_path):
    write_sites(SITES)
    monkeypatch.setattr(database, 'aws_credentials_path',
                        lambda: str(tmp_path / 'aws' / 'credentials'))
    monkeypatch.setattr(database.boto3, 'Session', lambda: NoCredentials())
    monkeypatch.setattr(database, 'confirm', lambda *args, **kwargs: False)
    c = FakeContext()
    assert database.refresh(c, project, 'ddev') is Outcome.CANCELLED
    assert c.commands == []


class NoCredentials(object):

    def get_credentials(self):
        return None


def test_configure_aws_credentials(tmp_path, monkeypatch):
    path = tmp_path / '.aws' / 'credentials'
    answers = iter(['AKIAEXAMPLE', 'secret'])
    monkeypatch.setattr(database, 'confirm', lambda *args, **kwargs: True)
    monkeypatch.setattr(database, 'ask', lambda *args, **kwargs: next(answers))
    assert database.configure_aws_credentials(str(path)) is Outcome.SUCCESS
    assert path.read_text() == ('[default]\n'
                                'aws_access_key_id = AKIAEXAMPLE\n'
                                'aws_secret_access_key = secret\n')
    assert oct(path.stat().st_mode & 0o777) == oct(0o600)


def test_refresh_all_isolates_sites(project, write_sites, client):
    write_sites(SITES)
    c = FakeContext()
    batch = database.refresh_all(
        c, project, client_factory=lambda site_name: client, driver='mariadb')

    assert batch.messages == \
        ["Key database_s3_bucket not found for 'blog'."]
    assert batch.for_site('blog') == batch.messages
    assert len(batch.for_site('default')) == 4
    assert len(batch.for_site('shop')) == 4
    assert batch.successful

    client_command = 'mariadb -h mariadb -u tugboat -ptugboat'
    default_commands = c.commands[:4]
    assert default_commands[0] == (
        client_command + " -e 'drop database if exists tugboat; "
        "create database tugboat;'")
    assert default_commands[1] == 'zcat {} | {} tugboat'.format(
        project.path('main-new.sql.gz'), client_command)
    assert default_commands[3] == '{} cache:rebuild'.format(project.drush)
    assert c.calls[3][1] == project.site_dir('default')
    assert c.commands[5] == 'zcat {} | {} shop'.format(
        project.path('prod_shop.sql.gz'), client_command)


def test_refresh_all_failure_stops_only_that_site(project, write_sites,
                                                  client):
    write_sites(SITES)
    c = FakeContext({'main-new.sql.gz |': Result(exited=1)})
    batch = database.refresh_all(
        c, project, client_factory=lambda site_name: client, driver='mysql')
    assert len(batch.for_site('default')) == 2
    assert len(batch.for_site('shop')) == 4
    assert not batch.successful


def test_preview_import_skips_cache_rebuild_on_drupal7(project):
    includes = os.path.join(project.drupal_root, 'includes')
    os.makedirs(includes)
    with open(os.path.join(includes, 'bootstrap.inc'), 'w') as stream:
        stream.write("define('VERSION', '7.101');")
    plan = database.preview_import_plan(project, 'blog', '/tmp/blog.sql.gz',
                                        'mysql')
    assert len(plan) == 3
    assert plan[-1].command == 'rm /tmp/blog.sql.gz'


def test_refresh_deletes_downloaded_dump_when_import_fails(project,
                                                           write_sites,
                                                           client):
    write_sites(SITES)
    c = FakeContext({'db-import': Result(exited=1)})
    with pytest.raises(CommandFailed):
        database.refresh(c, project, 'lando', 'shop', client=client)
    assert len(c.commands) == 1
    assert not os.path.exists(project.path('prod_shop.sql.gz'))


def test_refresh_all_skips_a_site_without_settings(project, write_sites,
                                                   client):
    write_sites("""\
default:
  database_s3_bucket: main-dumps
blog:
shop:
  database_s3_bucket: shop-dumps
  database_s3_key_prefix_string: prod/
""")
    batch = database.refresh_all(
        FakeContext(), project, client_factory=lambda site_name: client,
        driver='mysql')
    assert batch.for_site('blog') == ["Configuration for 'blog' not found."]
    assert len(batch.for_site('default')) == 4
    assert len(batch.for_site('shop')) == 4
    assert batch.successful


class DeniedS3Client(FakeS3Client):

    def get_paginator(self, name):
        raise ClientError({'Error': {'Code': 'AccessDenied',
                                     'Message': 'Access Denied'}},
                          'ListObjectsV2')


def test_refresh_all_continues_after_s3_error(project, write_sites, client):
    write_sites(SITES)
    denied = DeniedS3Client({})
    batch = database.refresh_all(
        FakeContext(), project, driver='mysql',
        client_factory=lambda site_name:
            denied if site_name == 'default' else client)
    message, = batch.for_site('default')
    assert message.startswith('default: ')
    assert 'AccessDenied' in message
    assert len(batch.for_site('shop')) == 4
    assert batch.successful


def test_refresh_all_task_fails_when_a_site_failed(monkeypatch):
    batch = BatchResult()
    batch.append('default', Result(exited=0))
    batch.append('blog', 'skipped')
    batch.append('shop', Result(exited=1))
    monkeypatch.setattr(database, 'refresh_all', lambda c, project: batch)
    with pytest.raises(DropshipError) as e:
        database.refresh_all_task.body(FakeContext())
    assert e.value.code == 1
    assert e.value.message == 'Database refresh failed for: shop.'


def test_refresh_all_task_succeeds(monkeypatch):
    batch = BatchResult()
    batch.append('default', Result(exited=0))
    batch.append('blog', 'skipped')
    monkeypatch.setattr(database, 'refresh_all', lambda c, project: batch)
    assert database.refresh_all_task.body(FakeContext()) is batch
