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
Coloured console output and interactive prompts shared by every task.
"""
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

console = Console(highlight=False)


def title(text):
    console.rule('[bold cyan]{}[/bold cyan]'.format(escape(text)))


def section(text):
    console.print('\n[bold cyan]## {}[/bold cyan]'.format(escape(text)))


def say(text):
    console.print('[green]{}[/green]'.format(escape(text)))


def warn(text):
    console.print('[yellow]{}[/yellow]'.format(escape(text)))


def yell(text):
    """
    Print an important message, for things the user must not miss.
    """
    console.print('[bold red]{}[/bold red]'.format(escape(text)))


def confirm(question, default=False):
    return Confirm.ask('[red]{}[/red]'.format(escape(question)),
                       default=default, console=console)


def ask(question, password=False):
    return Prompt.ask(escape(question), password=password, console=console)
