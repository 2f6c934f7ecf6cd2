"""HTTP surface: PBX webhook, Drive sync trigger, notes and contacts."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from aiohttp import web

from ..api_clients import BaseTreeSource
from ..core import ReconciliationEngine, SyncEngineError
from ..crm import filter_contacts, paginate
from ..database import RecordGateway, PersistenceError
from ..webhooks import CallEventHandler, CallEventError
from ..utils.logging import get_logger


GOOGLE_TOKEN_HEADER = "X-Google-Access-Token"


class WebServer:
    """Builds the aiohttp application and holds its collaborators.

    ``gateway_for_token`` returns the gateway user-facing requests run against
    (row level security scoped to the token's user on Supabase);
    ``tree_source_factory`` builds a Drive client, optionally for the user's
    own Google token.
    """

    def __init__(
        self,
        webhook_handler: CallEventHandler,
        owner_resolver,
        gateway_for_token: Callable[[str], RecordGateway],
        tree_source_factory: Callable[[Optional[str]], BaseTreeSource],
        chunk_size: int,
        cors_allow_origin: str = "*",
        version: str = ""
    ):
        self.webhook_handler = webhook_handler
        self.owner_resolver = owner_resolver
        self.gateway_for_token = gateway_for_token
        self.tree_source_factory = tree_source_factory
        self.chunk_size = chunk_size
        self.version = version
        self.cors_headers = {
            "Access-Control-Allow-Origin": cors_allow_origin,
            "Access-Control-Allow-Headers": f"authorization, x-client-info, apikey, content-type, {GOOGLE_TOKEN_HEADER.lower()}",
            "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        }
        self.logger = get_logger(self.__class__.__name__)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/webhooks/pbx", self._pbx_handler)
        app.router.add_route("*", "/sync/google-drive", self._sync_handler)
        app.router.add_get("/notes", self._list_notes_handler)
        app.router.add_delete("/notes/{note_id}", self._delete_note_handler)
        app.router.add_get("/contacts", self._list_contacts_handler)
        app.router.add_get("/health", self._health_handler)
        return app

    def _json(self, data: Dict[str, Any], status: int = 200) -> web.Response:
        return web.json_response(
            data,
            status=status,
            headers=self.cors_headers,
            dumps=lambda obj: json.dumps(obj, ensure_ascii=False, default=str)
        )

    def _preflight(self) -> web.Response:
        return web.Response(status=200, headers=self.cors_headers)

    def _persistence_error(self, action: str, error: PersistenceError) -> web.Response:
        self.logger.error(f"{action} error", error=str(error))
        return self._json({"error": str(error)}, status=500)

    async def _read_json(self, request: web.Request) -> Any:
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    async def _authorize(self, request: web.Request):
        """Resolve the bearer token to ``(token, owner)``, or ``None``."""
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        owner = await self.owner_resolver.resolve(token)
        return (token, owner) if owner else None

    async def _pbx_handler(self, request: web.Request) -> web.Response:
        if request.method == "OPTIONS":
            return self._preflight()
        if request.method != "POST":
            return self._json({"error": "Method not allowed"}, status=405)

        try:
            body = await self.webhook_handler.handle(await self._read_json(request))
            return self._json(body)
        except CallEventError as e:
            return self._json(e.body(), status=e.status)
        except Exception as e:
            self.logger.error("PBX webhook error", error=str(e))
            return self._json({"error": str(e) or "Unknown error"}, status=500)

    async def _sync_handler(self, request: web.Request) -> web.Response:
        if request.method == "OPTIONS":
            return self._preflight()
        if request.method != "POST":
            return self._json({"error": "Method not allowed"}, status=405)

        auth = await self._authorize(request)
        if auth is None:
            return self._json({"error": "Unauthorized"}, status=401)
        token, owner = auth

        body = await self._read_json(request)
        if not isinstance(body, dict) or not body.get("folderName"):
            return self._json({"error": "Missing required field: folderName"}, status=400)

        engine = ReconciliationEngine(
            tree_source=self.tree_source_factory(request.headers.get(GOOGLE_TOKEN_HEADER)),
            gateway=self.gateway_for_token(token),
            chunk_size=self.chunk_size
        )

        try:
            result = await engine.reconcile(
                body.get("folderId"),
                body.get("driveId"),
                body["folderName"],
                owner
            )
        except SyncEngineError as e:
            return self._json({"error": str(e)}, status=500)
        except Exception as e:
            self.logger.error("Batch sync error", owner=owner, error=str(e))
            return self._json({"error": str(e) or "Unknown error"}, status=500)

        return self._json(result.to_response())

    async def _list_notes_handler(self, request: web.Request) -> web.Response:
        auth = await self._authorize(request)
        if auth is None:
            return self._json({"error": "Unauthorized"}, status=401)
        token, owner = auth

        folder = request.query.get("folder", "")
        folder_path = [segment for segment in folder.split("/") if segment] or None

        try:
            notes = await self.gateway_for_token(token).list_notes(owner, folder_path)
        except PersistenceError as e:
            return self._persistence_error("List notes", e)

        return self._json({"notes": [note.model_dump(mode="json") for note in notes]})

    async def _delete_note_handler(self, request: web.Request) -> web.Response:
        auth = await self._authorize(request)
        if auth is None:
            return self._json({"error": "Unauthorized"}, status=401)
        token, owner = auth

        note_id: Any = request.match_info["note_id"]
        if note_id.isdigit():
            note_id = int(note_id)

        try:
            deleted = await self.gateway_for_token(token).delete_note(owner, note_id)
        except PersistenceError as e:
            return self._persistence_error("Delete note", e)

        if not deleted:
            return self._json({"error": "Note not found"}, status=404)
        return self._json({"success": True})

    async def _list_contacts_handler(self, request: web.Request) -> web.Response:
        auth = await self._authorize(request)
        if auth is None:
            return self._json({"error": "Unauthorized"}, status=401)
        token, _ = auth

        try:
            page = int(request.query.get("page", "1"))
        except ValueError:
            return self._json({"error": "page must be an integer"}, status=400)

        try:
            contacts = await self.gateway_for_token(token).list_contacts(request.query.get("type"))
        except PersistenceError as e:
            return self._persistence_error("List contacts", e)

        matches = filter_contacts(contacts, request.query.get("search", ""))
        return self._json(paginate(matches, page).to_dict())

    async def _health_handler(self, request: web.Request) -> web.Response:
        return self._json({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.version
        })
