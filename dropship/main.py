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
The ``dropship`` command: a Fabric program with the task collection built in.
"""
import os

from fabric import Executor
from fabric.main import Fab

from . import __version__, ns
from .default_vars import Config


class Dropship(Fab):
    """
    Fabric program loading ``dropship.yaml`` from the project root.

    The collection is built in, so Invoke never searches for a tasks module
    and never loads the project configuration on its own. The project is the
    current working directory.
    """

    def parse_collection(self):
        super(Dropship, self).parse_collection()
        self.config.set_project_location(os.getcwd())
        self.config.load_project()


program = Dropship(
    name='Dropship',
    version=__version__,
    namespace=ns,
    executor_class=Executor,
    config_class=Config,
)
