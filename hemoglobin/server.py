"""MCP Server for card search.

Provides tools for searching and retrieving cards from an in-memory
collection loaded from a JSON card file. Uses the low-level MCP Server
class.

Unparseable queries are not rejected: search_cards falls back to a
free-text search of the whole query and reports the parse error in the
response under "query_error".
"""

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import ijson
import mcp.types as types
from mcp.server.lowlevel import Server, NotificationOptions
from mcp.server.models import InitializationOptions
import mcp.server.stdio

from hemoglobin import __version__
from hemoglobin.card_store import CardCollection, CardStore
from hemoglobin.cards import CardDataError
from hemoglobin.data_manager import DataManager
from hemoglobin.query_parser import QueryError, SYNTAX_SUMMARY
from hemoglobin.search import fuzzy_fallback, lookup, search

logger = logging.getLogger(__name__)

# Server name constant - used in multiple places
SERVER_NAME = "hemoglobin"

DEFAULT_CARDS_FILE = "cards.json"
CARDS_ENV_VAR = "HEMOGLOBIN_CARDS"

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
BATCH_LIMIT = 50


def default_cards_path() -> Path:
    """Card file from the environment, or ./cards.json."""
    return Path(os.environ.get(CARDS_ENV_VAR, DEFAULT_CARDS_FILE))


@dataclass
class Tool:
    """Tool definition for MCP."""

    name: str
    description: str
    inputSchema: dict[str, Any]


class HemoglobinServer:
    """Card search MCP Server.

    Provides tools for searching and retrieving cards from the current
    in-memory snapshot.
    """

    name = SERVER_NAME
    version = __version__

    def __init__(self, cards_path: Path):
        """Initialize server.

        Args:
            cards_path: JSON file holding the card array
        """
        self.cards_path = cards_path

        self._store = CardStore()
        self._data_manager = DataManager(cards_path)
        self._refresh_task: asyncio.Task | None = None
        self._refresh_status: str = "idle"
        self._refresh_lock = asyncio.Lock()  # One refresh at a time

    def _init_cards(self, cards: list[dict[str, Any]]) -> None:
        """Replace the collection with card documents (for testing).

        Args:
            cards: List of card data dictionaries
        """
        self._store.replace(CardCollection.from_dicts(cards))

    def load(self) -> int:
        """Load the card file synchronously if it exists.

        A missing or malformed file leaves the store empty; refresh_data
        can load it once fixed.

        Returns:
            Number of cards loaded
        """
        if not self.cards_path.exists():
            logger.warning("Card file not found: %s", self.cards_path)
            return 0
        try:
            return self._data_manager.refresh(self._store)
        except (CardDataError, ijson.JSONError) as e:
            logger.warning("Invalid card data in %s: %s", self.cards_path, e)
            return 0

    async def cleanup(self) -> None:
        """Clean up server resources, cancelling any background refresh."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None

    async def __aenter__(self) -> "HemoglobinServer":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager and clean up resources."""
        await self.cleanup()

    def list_tools(self) -> list[Tool]:
        """List available tools.

        Returns:
            List of tool definitions
        """
        return [
            Tool(
                name="search_cards",
                description=f"Search for cards using the card query syntax. {SYNTAX_SUMMARY}",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Card search query (e.g., 'kins:Beast cost<=3 dragon')",
                        },
                        "limit": {
                            "type": "integer",
                            "description": f"Maximum results to return (default {DEFAULT_LIMIT}, max {MAX_LIMIT})",
                            "default": DEFAULT_LIMIT,
                            "minimum": 1,
                            "maximum": MAX_LIMIT,
                        },
                        "offset": {
                            "type": "integer",
                            "description": "Number of results to skip for pagination (default 0)",
                            "default": 0,
                            "minimum": 0,
                        },
                    },
                    "required": ["query"],
                },
            ),
            Tool(
                name="get_card",
                description="Get a single card by id or exact name.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "id": {
                            "type": "string",
                            "description": "Card id (e.g., 'card-042')",
                        },
                        "name": {
                            "type": "string",
                            "description": "Exact card name",
                        },
                    },
                },
            ),
            Tool(
                name="get_cards_batch",
                description="Get multiple cards by id or name in a single call. "
                f"Limited to {BATCH_LIMIT} cards per request.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "ids": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": f"List of card ids (max {BATCH_LIMIT} combined with names)",
                        },
                        "names": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": f"List of exact card names (max {BATCH_LIMIT} combined with ids)",
                        },
                    },
                },
            ),
            Tool(
                name="data_status",
                description="Check the status of the loaded card data. "
                "Returns card count, load time, and whether the card file changed since.",
                inputSchema={
                    "type": "object",
                    "properties": {},
                },
            ),
            Tool(
                name="refresh_data",
                description="Reload the card file if it changed since the last load.",
                inputSchema={
                    "type": "object",
                    "properties": {},
                },
            ),
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Tool result dictionary
        """
        if name == "search_cards":
            return await self._search_cards(arguments)
        elif name == "get_card":
            return await self._get_card(arguments)
        elif name == "get_cards_batch":
            return await self._get_cards_batch(arguments)
        elif name == "data_status":
            return await self._data_status(arguments)
        elif name == "refresh_data":
            return await self._refresh_data(arguments)
        else:
            return {"error": f"Unknown tool: {name}"}

    async def _search_cards(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Search for cards.

        Args:
            arguments: {"query": str, "limit": int, "offset": int}

        Returns:
            {"cards": [...], "total_count": int, "query": str, "ranked": bool,
             "query_time_ms": int, "offset": int}, plus "query_error" when
            the query could not be parsed and free-text search was used
        """
        query = arguments.get("query", "")
        limit = max(1, min(arguments.get("limit", DEFAULT_LIMIT), MAX_LIMIT))
        offset = max(0, arguments.get("offset", 0))

        start_time = time.time()
        snapshot = self._store.snapshot()

        query_error: QueryError | None = None
        try:
            result = search(query, snapshot)
        except QueryError as e:
            query_error = e
            result = fuzzy_fallback(query, snapshot)

        response = result.to_dict(limit=limit, offset=offset)
        response["query_time_ms"] = int((time.time() - start_time) * 1000)

        if query_error is not None:
            response["query_error"] = {
                "kind": query_error.kind,
                "error": query_error.message,
                "hint": query_error.hint,
                "supported_syntax": query_error.supported_syntax,
            }

        return response

    async def _get_card(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get a single card.

        Args:
            arguments: {"id": str} or {"name": str} (not both)

        Returns:
            Card dictionary or error
        """
        name = arguments.get("name")
        card_id = arguments.get("id")

        if name and card_id:
            return {"error": "Provide either 'name' or 'id', not both"}
        elif not name and not card_id:
            return {"error": "Either 'name' or 'id' must be provided"}

        snapshot = self._store.snapshot()
        if card_id:
            card = lookup(card_id, snapshot)
        else:
            card = snapshot.get_card_by_name(name)

        if card:
            return card.to_dict()
        else:
            return {
                "error": "Card not found",
                "hint": f"Try searching with: search_cards query=\"{name or card_id}\"",
            }

    async def _get_cards_batch(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get multiple cards.

        Args:
            arguments: {"ids": [...]} and/or {"names": [...]}

        Returns:
            {"found": [...], "not_found": [...]}, plus "truncated" and
            "truncated_count" when more than the batch limit was requested
        """
        ids = arguments.get("ids", [])
        names = arguments.get("names", [])

        total_requested = len(ids) + len(names)
        truncated = total_requested > BATCH_LIMIT

        found = []
        not_found = []
        remaining = BATCH_LIMIT

        snapshot = self._store.snapshot()

        for card_id in ids[:remaining]:
            card = lookup(card_id, snapshot)
            if card:
                found.append(card.to_dict())
            else:
                not_found.append(card_id)

        remaining -= min(len(ids), remaining)

        for name in names[:remaining]:
            card = snapshot.get_card_by_name(name)
            if card:
                found.append(card.to_dict())
            else:
                not_found.append(name)

        result: dict[str, Any] = {
            "found": found,
            "not_found": not_found,
        }

        if truncated:
            result["truncated"] = True
            result["truncated_count"] = total_requested - BATCH_LIMIT

        return result

    async def _data_status(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Get card data status.

        Returns:
            {"last_updated": str, "card_count": int, "source": str, "stale": bool,
             "refresh_status": str (only while not idle)}
        """
        result = self._data_manager.get_status().to_dict()
        result["card_count"] = self._store.get_card_count()

        if self._refresh_status != "idle":
            result["refresh_status"] = self._refresh_status

        return result

    async def _do_refresh(self) -> None:
        """Reload the card file (runs in background)."""
        try:
            self._refresh_status = "loading"

            async with self._refresh_lock:
                # Parsing the file is blocking work
                card_count = await asyncio.to_thread(self._data_manager.refresh, self._store)

            logger.info("Refresh loaded %d cards", card_count)
            self._refresh_status = "completed"

        except Exception as e:
            logger.warning("Refresh failed: %s", e)
            self._refresh_status = f"error: {str(e)}"

        finally:
            self._refresh_task = None

    async def _refresh_data(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Reload the card file when it changed.

        Returns:
            {"status": str, "message": str}
        """
        if self._refresh_task is not None and not self._refresh_task.done():
            return {
                "status": "in_progress",
                "message": f"Data refresh already in progress: {self._refresh_status}",
            }

        if self._refresh_status == "completed":
            self._refresh_status = "idle"
            return {
                "status": "completed",
                "message": "Data refresh completed successfully",
            }

        if self._refresh_status.startswith("error:"):
            error_msg = self._refresh_status
            self._refresh_status = "idle"
            return {
                "status": "error",
                "message": error_msg,
            }

        if not self.cards_path.exists():
            return {
                "status": "error",
                "message": f"Card file not found: {self.cards_path}",
            }

        if not self._data_manager.is_cache_stale():
            return {
                "status": "already_current",
                "message": "Data is already up to date",
            }

        self._refresh_task = asyncio.create_task(self._do_refresh())

        return {
            "status": "loading",
            "message": "Data refresh started. Use data_status to check progress.",
        }


def create_server(cards_path: Path) -> tuple[Server, HemoglobinServer]:
    """Create MCP server instance.

    Args:
        cards_path: JSON file holding the card array

    Returns:
        Tuple of (MCP Server, HemoglobinServer instance for cleanup)
    """
    hemoglobin = HemoglobinServer(cards_path)

    server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        """Return available tools."""
        tools = hemoglobin.list_tools()
        return [
            types.Tool(
                name=t.name,
                description=t.description,
                inputSchema=t.inputSchema,
            )
            for t in tools
        ]

    @server.call_tool()
    async def handle_call_tool(
        name: str, arguments: dict[str, Any]
    ) -> list[types.TextContent]:
        """Handle tool execution."""
        result = await hemoglobin.call_tool(name, arguments or {})
        return [
            types.TextContent(
                type="text",
                text=json.dumps(result, default=str),
            )
        ]

    return server, hemoglobin


async def run_server(cards_path: Path | None = None) -> None:
    """Run the MCP server over stdio.

    Args:
        cards_path: Optional card file (defaults to $HEMOGLOBIN_CARDS or ./cards.json)
    """
    if cards_path is None:
        cards_path = default_cards_path()

    server, hemoglobin = create_server(cards_path)
    await asyncio.to_thread(hemoglobin.load)

    try:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )
    finally:
        await hemoglobin.cleanup()


def main() -> None:
    """Server entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
