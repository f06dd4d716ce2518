import os
from contextlib import contextmanager

import pytest
import requests
from invoke import Result

from dropship.core import Project
from dropship.default_vars import Settings


class FakeContext(object):
    """
    Record the commands a task runs instead of running them.

    ``results`` maps a command substring to the Result returned for it.
    """

    def __init__(self, results=None, config=None):
        self.results = results or {}
        self.config = {'dropship': config or {}}
        self.calls = []
        self._directories = []

    @contextmanager
    def cd(self, path):
        self._directories.append(path)
        try:
            yield
        finally:
            self._directories.pop()

    def run(self, command, **kwargs):
        directory = self._directories[-1] if self._directories else None
        self.calls.append((command, directory, kwargs))
        for pattern, result in self.results.items():
            if pattern in command:
                return result
        return Result(command=command, exited=0)

    @property
    def commands(self):
        return [command for command, _, _ in self.calls]


class FakeResponse(object):

    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError('{} error'.format(self.status_code))


class FakeSession(object):

    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.posts = []

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        if self.error:
            raise self.error
        return FakeResponse(self.status_code)


class FakePaginator(object):

    def __init__(self, objects):
        self.objects = objects

    def paginate(self, Bucket, Prefix=''):
        contents = [item for item in self.objects.get(Bucket, [])
                    if item['Key'].startswith(Prefix)]
        # Two pages, the way S3 splits long listings.
        middle = len(contents) // 2
        yield {'Contents': contents[:middle]} if middle else {}
        yield {'Contents': contents[middle:]}


class FakeS3Client(object):
    """
    An S3 client serving listings from a {bucket: [objects]} mapping.
    """

    def __init__(self, objects):
        self.objects = objects
        self.downloads = []

    def get_paginator(self, name):
        assert name == 'list_objects_v2'
        return FakePaginator(self.objects)

    def download_file(self, bucket, key, path):
        self.downloads.append((bucket, key, path))
        with open(path, 'wb') as stream:
            stream.write(b'-- dump of ' + key.encode())


@pytest.fixture
def project(tmp_path):
    os.makedirs(str(tmp_path / 'web' / 'sites' / 'default'))
    return Project(root=str(tmp_path), settings=Settings())


@pytest.fixture
def write_sites(project):
    def write(content):
        with open(project.path('.sites.config.yml'), 'w') as stream:
            stream.write(content)
    return write


@pytest.fixture
def context():
    return FakeContext()


@pytest.fixture
def session():
    return FakeSession()
