import asyncio
import logging
from logging import Logger
from typing import Optional, Tuple

from userapi.exceptions import BindFailure, MalformedRequest, PayloadTooLarge
from userapi.handler.body import DEFAULT_BODY_LIMIT
from userapi.pipeline import Pipeline
from userapi.protocol.parser import read_request
from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

MAX_HEADERS_SIZE = 65536


class HTTPServer:
    """Listening socket feeding every request through one pipeline.

    Each connection is served by its own task; requests on a keep-alive
    connection are handled one after another.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        server_address: Tuple[str, int],
        logger: Optional[Logger] = None,
        body_limit: int = DEFAULT_BODY_LIMIT,
    ):
        self.pipeline = pipeline
        self.server_address = server_address
        self.body_limit = body_limit
        self.logger = logger or logging.getLogger(__name__)
        self._server: Optional[asyncio.AbstractServer] = None
        self._connections = set()

    @property
    def host(self) -> str:
        return self.server_address[0]

    @property
    def port(self) -> int:
        return self.server_address[1]

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def start(self):
        """Bind the socket and start accepting connections."""
        host, port = self.server_address
        self.pipeline.freeze()
        try:
            self._server = await asyncio.start_server(
                self.handle_connection, host, port, limit=MAX_HEADERS_SIZE
            )
        except OSError as e:
            raise BindFailure(host, port, e.strerror or str(e)) from e

        sockname = self._server.sockets[0].getsockname()
        self.server_address = (host, sockname[1])
        self.logger.info(f"Server Running at {self.url}")

    async def serve_forever(self):
        if self._server is None:
            await self.start()
        try:
            await self._server.serve_forever()
        except asyncio.CancelledError:
            self.logger.info("Server shutting down")
            raise
        finally:
            await self.stop()

    async def stop(self):
        if self._server is None:
            return
        self._server.close()
        for task in list(self._connections):
            task.cancel()
        await asyncio.gather(*self._connections, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        self.logger.info(f"Server at {self.url} stopped")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ):
        task = asyncio.current_task()
        self._connections.add(task)
        peer = writer.get_extra_info("peername")
        client_address = f"{peer[0]}:{peer[1]}" if peer else None
        self.logger.debug(f"{client_address}: Accepted connection")
        try:
            keep_alive = True
            while keep_alive:
                try:
                    request = await read_request(reader, client_address, self.body_limit)
                except MalformedRequest as e:
                    self.logger.warning(f"{client_address}: Client sent a malformed request: {e}")
                    await self.reject(writer, 400, "Bad Request")
                    break
                except PayloadTooLarge as e:
                    self.logger.warning(f"{client_address}: {e}")
                    await self.reject(writer, e.status_code, e.message)
                    break
                if request is None:
                    break

                keep_alive = request.keep_alive
                response = await self.handle_data(client_address, request)
                response.set_header("Connection", "keep-alive" if keep_alive else "close")
                writer.write(self.render(client_address, request, response))
                await writer.drain()
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError, ConnectionError) as e:
            self.logger.debug(f"{client_address}: Connection was closed unexpectedly: {e!r}")
        finally:
            self._connections.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass
            self.logger.debug(f"{client_address}: Connection closed")

    async def handle_data(self, client_address, request: HTTPRequest) -> HTTPResponse:
        response = await self.pipeline.run(request)
        self.logger.info(
            f"{request.method} {request.path} {response.status_code} from {client_address}"
        )
        return response

    def render(self, client_address, request: HTTPRequest, response: HTTPResponse) -> bytes:
        include_body = request.method != "HEAD"
        try:
            return response.to_bytes(include_body=include_body)
        except Exception:
            self.logger.exception(
                f"{client_address}: Cannot serialize response to {request.method} {request.path}"
            )
            error = HTTPResponse(status_code=500).json({"error": "Internal Server Error"})
            error.set_header("Connection", response.get_header("Connection") or "close")
            return error.to_bytes(include_body=include_body)

    async def reject(self, writer: asyncio.StreamWriter, status_code: int, message: str):
        """Answer a request that never reached the pipeline and close."""
        response = HTTPResponse(status_code=status_code).json({"error": message})
        response.set_header("Connection", "close")
        writer.write(response.to_bytes())
        await writer.drain()
