__title__ = 'couchrest'
__description__ = 'A thin client library for CouchDB style document databases'
__version__ = '2026.10.18'
__author__ = 'Doug Skrypa'
