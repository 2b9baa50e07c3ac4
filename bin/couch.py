#!/usr/bin/env python

import json
import logging
import sys

from cli_command_parser import Command, SubCommand, ParamGroup, Positional, Option, Flag, Counter, main

from couchrest.__version__ import __version__  # noqa
from couchrest.server import Server, DEFAULT_URL

log = logging.getLogger(__name__)


class CouchCLI(Command, description='Utility for interacting with a CouchDB server'):
    action = SubCommand()
    url = Option('-u', default=DEFAULT_URL, help='The URL of the server')
    verbose = Counter('-v', help='Increase logging verbosity (can specify multiple times)')

    with ParamGroup(description='Connection Options'):
        timeout = Option('-t', type=float, help='Read timeout in seconds')
        no_verify = Flag('-k', help='Do not verify SSL certificates')

    def _init_command_(self):
        from couchrest.logging import init_logging

        init_logging(self.verbose, http_debugging=self.verbose > 3)

    @property
    def server(self) -> Server:
        options = {}
        if self.timeout:
            options['timeout'] = self.timeout
        if self.no_verify:
            options['verify_ssl'] = False
        return Server(self.url, **options)


class Info(CouchCLI, help='Show server info'):
    def main(self):
        print_json(self.server.info())


class Dbs(CouchCLI, help='List databases'):
    def main(self):
        for name in self.server.databases():
            print(name)


class Get(CouchCLI, help='Retrieve a document'):
    path = Positional(help='The path to retrieve, relative to the server URL (such as db_name/doc_id)')

    def main(self):
        print_json(self.server.connection.get(self.path))


class Put(CouchCLI, help='Create or update a document or database'):
    path = Positional(help='The path to update, relative to the server URL (such as db_name/doc_id)')
    doc = Option('-d', help='The JSON document to store (default: read from stdin if not a tty)')

    def main(self):
        if self.doc:
            doc = json.loads(self.doc)
        elif not sys.stdin.isatty():
            doc = json.load(sys.stdin)
        else:
            doc = None
        print_json(self.server.connection.put(self.path, doc))


class Delete(CouchCLI, help='Delete a document or database'):
    path = Positional(help='The path to delete, relative to the server URL (such as db_name/doc_id?rev=1-abc)')

    def main(self):
        print_json(self.server.connection.delete(self.path))


class Uuids(CouchCLI, help='Generate UUIDs'):
    count = Option('-c', type=int, default=1, help='The number of UUIDs to generate')

    def main(self):
        server = self.server
        for _ in range(self.count):
            print(server.next_uuid(self.count))


def print_json(data):
    print(json.dumps(data, indent=4, sort_keys=True))


if __name__ == '__main__':
    main()
