"""
DNS Server Core

Network front end of the dynamic DNS server:
- UDP listener built on asyncio.DatagramProtocol
- Optional TCP listener on the same port, with two-byte length framing
- A bounded number of requests in flight; each one runs the request
  handler in a worker thread so storage transactions never block the loop
"""

import asyncio
import logging
import struct
import time
from typing import Any, Dict, Optional, Set, Tuple

from .handler import RequestHandler

logger = logging.getLogger(__name__)

TCP_LENGTH = struct.Struct("!H")


class DNSUDPProtocol(asyncio.DatagramProtocol):
    """Datagram protocol feeding every packet to the server"""

    def __init__(self, server: "DNSServer"):
        self.server = server
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport):
        self.transport = transport
        logger.info(f"Listening for UDP on {transport.get_extra_info('sockname')}")

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.server.spawn(self._reply(data, addr))

    async def _reply(self, data: bytes, addr: Tuple[str, int]) -> None:
        reply = await self.server.handle_dns_request(data, addr[0], "UDP")
        if reply is not None and self.transport is not None:
            self.transport.sendto(reply, addr)

    def error_received(self, exc):
        logger.error(f"UDP socket error: {exc}")


class DNSServer:
    """Dynamic DNS server listening on UDP and, optionally, TCP.

    ``config`` only needs a ``server`` section carrying ``bind_address``,
    ``dns_port``, ``enable_tcp`` and ``max_concurrent_requests``.
    """

    def __init__(self, config, handler: RequestHandler):
        self.config = config
        self.handler = handler

        self._udp_transport: Optional[asyncio.DatagramTransport] = None
        self._tcp_server: Optional[asyncio.AbstractServer] = None
        self._background_tasks: Set[asyncio.Task] = set()
        self._tcp_writers: Set[asyncio.StreamWriter] = set()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._is_running = False
        self._start_time = 0.0

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def udp_address(self) -> Optional[Tuple[str, int]]:
        """Bound UDP address; the real port when configured with port 0"""
        if self._udp_transport is None:
            return None
        return self._udp_transport.get_extra_info("sockname")[:2]

    @property
    def tcp_address(self) -> Optional[Tuple[str, int]]:
        if self._tcp_server is None or not self._tcp_server.sockets:
            return None
        return self._tcp_server.sockets[0].getsockname()[:2]

    async def start(self) -> None:
        """Bind the listeners"""
        if self._is_running:
            logger.warning("Server is already running")
            return

        settings = self.config.server
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_requests)

        try:
            loop = asyncio.get_running_loop()
            self._udp_transport, _ = await loop.create_datagram_endpoint(
                lambda: DNSUDPProtocol(self),
                local_addr=(settings.bind_address, settings.dns_port),
            )

            if settings.enable_tcp:
                _, port = self.udp_address
                self._tcp_server = await asyncio.start_server(
                    self._serve_tcp_client, host=settings.bind_address, port=port
                )
        except OSError as e:
            logger.error(
                f"Cannot listen on {settings.bind_address}:{settings.dns_port}: {e}"
            )
            await self._close_listeners()
            raise

        self._start_time = time.time()
        self._is_running = True
        logger.info(f"DNS server started on {self.udp_address}")

    async def stop(self) -> None:
        """Close the listeners and wait for requests still being handled"""
        if not self._is_running:
            return

        logger.info("Stopping DNS server...")
        await self._close_listeners()

        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

        self._is_running = False
        logger.info("DNS server stopped")

    def spawn(self, coro) -> asyncio.Task:
        """Run a request coroutine in the background, keeping a reference"""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Request task failed: {task.exception()}")

    async def _close_listeners(self) -> None:
        if self._udp_transport is not None:
            self._udp_transport.close()
            self._udp_transport = None

        if self._tcp_server is not None:
            self._tcp_server.close()
            for writer in list(self._tcp_writers):
                writer.close()
            await self._tcp_server.wait_closed()
            self._tcp_server = None

    async def _serve_tcp_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Answer length-prefixed messages until the client goes away"""
        peer = writer.get_extra_info("peername")
        client_ip = peer[0] if peer else "unknown"
        self._tcp_writers.add(writer)

        try:
            while True:
                try:
                    (length,) = TCP_LENGTH.unpack(
                        await reader.readexactly(TCP_LENGTH.size)
                    )
                    data = await reader.readexactly(length)
                except asyncio.IncompleteReadError:
                    break

                reply = await self.handle_dns_request(data, client_ip, "TCP")
                if reply is None:
                    break

                writer.write(TCP_LENGTH.pack(len(reply)) + reply)
                await writer.drain()
        except ConnectionError as e:
            logger.debug(f"TCP connection from {client_ip} lost: {e}")
        finally:
            self._tcp_writers.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def handle_dns_request(
        self, data: bytes, client_ip: str, protocol: str
    ) -> Optional[bytes]:
        """Handle one message in a worker thread, bounded by the semaphore"""
        async with self._semaphore:
            return await asyncio.to_thread(self.handler.handle, data, client_ip, protocol)

    def get_stats(self) -> Dict[str, Any]:
        uptime = time.time() - self._start_time if self._start_time else 0.0

        return {
            "uptime_seconds": round(uptime, 2),
            "is_running": self._is_running,
            "in_flight": len(self._background_tasks),
            **self.handler.stats.to_dict(),
        }
