"""
=============================================================================
FILE HANDLER
=============================================================================

Serves and stores files under the configured directory.

    GET  /files/{name}   → 200 application/octet-stream with the contents
                           404 if the file is absent
    POST /files/{name}   → write the request body verbatim, 201

=============================================================================
FLOW
=============================================================================

    Request: GET /files/notes.txt
        1. Router puts "notes.txt" in path_params["suffix"]
        2. FileStore resolves it under the root
        3. NotFound    → 404
           contents    → 200, raw body, Content-Length = byte count

    Request: POST /files/new.txt  (body: hello)
        1. Router puts "new.txt" in path_params["suffix"]
        2. FileStore writes the raw request body, creating or overwriting
        3. 201 Created

IOFailure is not caught here. It propagates to the connection driver,
which answers 500.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, created, not_found
from ..http.router import SUFFIX
from ..storage import FileStore, NotFound


logger = logging.getLogger(__name__)


class FileHandler:
    """
    Route handlers bound to one FileStore.

    Usage:
        files = FileHandler(FileStore("/tmp/data"))
        router.get("/files/", prefix=True)(files.read)
        router.post("/files/", prefix=True)(files.write)
    """

    def __init__(self, store: FileStore):
        self.store = store

    def read(self, request: HTTPRequest) -> HTTPResponse:
        """Serve a file's contents as application/octet-stream."""
        name = request.path_params.get(SUFFIX, "")
        try:
            content = self.store.read_all(name)
        except NotFound:
            logger.debug(f"File not found: {name!r}")
            return not_found(request.version)

        return ResponseBuilder(request.version).file(content).build()

    def write(self, request: HTTPRequest) -> HTTPResponse:
        """Store the request body under the requested name."""
        name = request.path_params.get(SUFFIX, "")
        self.store.write_all(name, request.raw_body)
        logger.info(f"Stored {len(request.raw_body)} bytes as {name!r}")
        return created(request.version)
