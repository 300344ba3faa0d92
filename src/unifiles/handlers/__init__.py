"""
Uri handlers.

A handler implements one family of uris:
- basic - Local filesystem paths and http(s) urls
- swarm - Content-addressed references served by a Bee gateway

Usage:
    from unifiles.handlers import BasicHandler

    handler = BasicHandler()
    handler.get_uri_kind("/images/a.png")   # LOCAL_ABSOLUTE | ONLINE_RELATIVE
    handler.uri_to_absolute_uri("a.png", "https://example.com/images/", UriKind.ONLINE_RELATIVE)
"""

from unifiles.handlers.base import HANDLER_METHODS, FileContent, Handler
from unifiles.handlers.basic import BasicHandler
from unifiles.handlers.swarm import SwarmHandler

__all__ = [
    'Handler',
    'FileContent',
    'HANDLER_METHODS',
    'BasicHandler',
    'SwarmHandler',
]
