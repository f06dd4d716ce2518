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
Database dumps: download from S3 and import into local or preview databases.

Dumps are gzipped SQL files stored in a per-site bucket, configured in the
sites configuration::

    default:
      database_s3_bucket: example-db-dumps
      database_s3_key_prefix_string: prod/
      database_s3_region: ca-central-1
"""
import os
import re
import shlex

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fabric import task

from .console import ask, confirm, say, section, title, warn, yell
from .core import (BatchResult, Outcome, Project, Step, exit_with, find_binary,
                   run_plan, run_step)
from .deploy import local_deploy_plan
from .environments import (LocalEnvironmentType,
                           resolve_database_import_command)
from .exceptions import DropshipError, NoDatabaseDumps
from .sites import DEFAULT_SITE

# Reserved characters, control characters, DEL, NO-BREAK SPACE and SOFT
# HYPHEN are not allowed in file names on every platform.
UNSAFE_FILENAME_CHARACTERS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f\xa0\xad]')


def sanitize_filename(filename):
    return UNSAFE_FILENAME_CHARACTERS.sub('_', filename)


def aws_credentials_path():
    return os.path.join(os.path.expanduser('~'), '.aws', 'credentials')


def configure_aws_credentials(path=None):
    """
    Ask for AWS credentials and write them to the credentials file.
    :return: Outcome.CANCELLED if the user declined.
    """
    path = path or aws_credentials_path()
    if not confirm('AWS S3 credentials not detected. Do you wish to '
                   'configure them?'):
        return Outcome.CANCELLED
    os.makedirs(os.path.dirname(path), exist_ok=True)
    key_id = ask('AWS Access Key ID:')
    secret_key = ask('AWS Secret Access Key:', password=True)
    with open(path, 'a') as stream:
        stream.write('[default]\n')
        stream.write('aws_access_key_id = {}\n'.format(key_id))
        stream.write('aws_secret_access_key = {}\n'.format(secret_key))
    os.chmod(path, 0o600)
    return Outcome.SUCCESS


def s3_bucket_for_site(sites, site_name):
    bucket = sites.get_required_item('database_s3_bucket', site_name)
    say("'{}' S3 bucket: {}".format(site_name, bucket))
    return bucket


def s3_region_for_site(sites, site_name, default_region):
    region = sites.get_optional_item('database_s3_region', site_name)
    if region is None:
        say("'{}' database_s3_region not set. Defaulting to {}."
            "".format(site_name, default_region))
        return default_region
    say("'{}' database_s3_region set to {}.".format(site_name, region))
    return region


def s3_list_request(sites, site_name):
    request = {'Bucket': s3_bucket_for_site(sites, site_name)}
    prefix = sites.get_optional_item('database_s3_key_prefix_string',
                                     site_name)
    if prefix is None:
        say('No S3 Key prefix found for {}.'.format(site_name))
    else:
        say("'{}' S3 Key prefix: '{}'".format(site_name, prefix))
        request['Prefix'] = prefix
    return request


def latest_object(objects):
    """
    Pick the most recently modified object.

    Objects sharing the latest modification time are ordered by key and the
    last one wins, so the choice does not depend on the listing order.
    """
    return max(objects, key=lambda item: (item['LastModified'], item['Key']))


def list_objects(client, request):
    paginator = client.get_paginator('list_objects_v2')
    objects = []
    for page in paginator.paginate(**request):
        objects.extend(page.get('Contents', []))
    return objects


def download_latest_dump(project, site_name=DEFAULT_SITE, client=None,
                         destination=None):
    """
    Download the latest database dump of a site.
    :param client: an S3 client, built from the site region when None.
    :param destination: the download directory, the project root by default.
    :return: the path of the dump, or Outcome.CANCELLED.
    """
    title('database download.')
    sites = project.sites
    if client is None:
        if not os.path.exists(aws_credentials_path()) and \
                boto3.Session().get_credentials() is None:
            if configure_aws_credentials() is Outcome.CANCELLED:
                return Outcome.CANCELLED
        client = boto3.client('s3', region_name=s3_region_for_site(
            sites, site_name, project.settings.s3_default_region))
    request = s3_list_request(sites, site_name)
    objects = list_objects(client, request)
    if not objects:
        raise NoDatabaseDumps("No database dumps found for '{}'."
                              "".format(site_name))
    key = latest_object(objects)['Key']
    path = os.path.join(destination or project.root, sanitize_filename(key))
    if os.path.exists(path):
        say('Skipping download. Latest database dump file exists >>> {}'
            ''.format(path))
    else:
        client.download_file(request['Bucket'], key, path)
        say('Database dump file downloaded >>> {}'.format(path))
    return path


def refresh_plan(project, environment_type, site_name, db_path):
    """
    Steps importing a dump into a local environment, then deploying.
    """
    import_command = resolve_database_import_command(environment_type,
                                                     site_name, db_path)
    return [Step(import_command, directory=project.root)] + \
        local_deploy_plan(project, environment_type, site_name)


def refresh(c, project, environment_type, site_name=DEFAULT_SITE,
            db_path=None, client=None):
    """
    Refresh a site database in a local development environment.
    :param db_path: a dump to import instead of downloading one. It is kept
    after the import.
    :return: the list of results, or Outcome.CANCELLED.
    """
    environment_type = LocalEnvironmentType.coerce(environment_type)
    title('{} database refresh.'.format(environment_type.value))
    downloaded = db_path is None
    if downloaded:
        db_path = download_latest_dump(project, site_name, client)
        if db_path is Outcome.CANCELLED:
            return Outcome.CANCELLED
    plan = refresh_plan(project, environment_type, site_name, db_path)
    section('importing {} database.'.format(site_name))
    try:
        results = [run_step(c, plan[0])]
    finally:
        if downloaded:
            say('Deleting {}'.format(db_path))
            if os.path.exists(db_path):
                os.remove(db_path)
    section('drush deploy.')
    return results + run_plan(c, plan[1:])


def preview_import_plan(project, site_name, db_path, driver):
    """
    Steps loading a dump into the preview database server.
    """
    settings = project.settings
    db_name = settings.preview_db_name if site_name == DEFAULT_SITE \
        else site_name
    client = '{} -h {} -u {} -p{}'.format(
        driver, settings.preview_db_host, settings.preview_db_user,
        settings.preview_db_password)
    plan = [
        Step('{} -e {}'.format(client, shlex.quote(
            'drop database if exists {0}; create database {0};'
            ''.format(db_name)))),
        Step('zcat {} | {} {}'.format(shlex.quote(db_path), client, db_name)),
        Step('rm {}'.format(shlex.quote(db_path))),
    ]
    if not project.is_drupal7():
        plan.append(Step('{} cache:rebuild'.format(project.drush),
                         directory=project.site_dir(site_name)))
    return plan


def refresh_all(c, project, client_factory=None, driver=None):
    """
    Refresh the database of every configured site on a preview.

    A site without dump configuration, or whose download fails, is skipped,
    and a failing command only stops the site it belongs to.
    :param client_factory: callable returning an S3 client for a site name.
    :param driver: the database client binary, mariadb or mysql by default.
    :return: a BatchResult.
    """
    title('refresh tugboat databases.')
    batch = BatchResult()
    driver = driver or find_binary('mariadb', ['mysql'])
    for site_name in project.sites.list_site_names():
        client = client_factory(site_name) if client_factory else None
        try:
            db_path = download_latest_dump(project, site_name, client)
        except DropshipError as e:
            yell('{}: No database configured. Download/import skipped.'
                 ''.format(site_name))
            batch.append(site_name, str(e))
            continue
        except (BotoCoreError, ClientError) as e:
            yell('{}: Database download failed. Import skipped.'.format(
                site_name))
            batch.append(site_name, '{}: {}'.format(site_name, e))
            continue
        if not isinstance(db_path, str) or not db_path:
            message = "'{}' database path not found.".format(site_name)
            yell(message)
            batch.append(site_name, message)
            continue
        section('import {} database.'.format(site_name))
        for step in preview_import_plan(project, site_name, db_path, driver):
            result = run_step(c, step, warn_only=True)
            batch.append(site_name, result)
            if result.failed:
                warn("'{}' refresh stopped: {}".format(site_name,
                                                       step.command))
                break
    return batch


@task(aliases=['dbdl'])
def download(c, site_name=DEFAULT_SITE):
    """
    Download the latest database dump for the site.
    :param site_name: The Drupal site name.
    """
    return exit_with(download_latest_dump(Project.from_context(c), site_name))


@task(name='refresh')
def refresh_task(c, environment_type=None, site_name=DEFAULT_SITE,
                 db_path=None):
    """
    Refresh a site database in the local development environment.
    :param environment_type: The local development environment: ddev, lando.
    :param site_name: The Drupal site name.
    :param db_path: A database dump to import instead of the latest one.
    """
    project = Project.from_context(c)
    return exit_with(refresh(
        c, project, environment_type or project.settings.environment_type,
        site_name, db_path))


@task(name='refresh-all')
def refresh_all_task(c):
    """
    Refresh the database of every site on a Tugboat preview.
    """
    batch = refresh_all(c, Project.from_context(c))
    for message in batch.messages:
        warn(message)
    if not batch.successful:
        raise DropshipError('Database refresh failed for: {}.'.format(
            ', '.join(batch.failed_sites)))
    return batch
