"""
=============================================================================
MINIHTTP
=============================================================================

A small HTTP/1.1 server built directly on sockets.

    GET  /                 200, empty body
    GET  /echo/{text}      200 text/plain {text}, gzip if the client accepts it
    GET  /user-agent       200 text/plain with the User-Agent header value
         (any other path sending User-Agent behaves the same)
    GET  /files/{name}     200 application/octet-stream, or 404
    POST /files/{name}     write the request body to {name}, 201

=============================================================================
PACKAGE LAYOUT
=============================================================================

    minihttp/
    ├── __main__.py        CLI: python -m minihttp --directory /tmp/data
    ├── config.py          ServerConfig (defaults, env vars, validation)
    ├── server.py          HTTPServer: wires everything together
    ├── routes.py          The routing table
    ├── storage.py         FileStore for /files/*
    ├── core/              Sockets, connections, framing, thread pool
    ├── http/              Decoder, response model + encoder, gzip, router
    ├── handlers/          Endpoint functions
    └── middleware/        Middleware pipeline and access logging

=============================================================================
QUICK START
=============================================================================

    from minihttp import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(directory="/tmp/data")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig
from .storage import FileStore

__all__ = ["HTTPServer", "ServerConfig", "FileStore", "__version__"]
