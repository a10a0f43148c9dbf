import base64
import json
import os
import sys
import threading
from urllib.parse import parse_qs

import httpx
import httplib2
import pytest
import pytest_asyncio
from googleapiclient.errors import HttpError

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from auth import GoogleOAuthClient, get_oauth_client
from config import GoogleOAuthSettings
from database import create_engine
from services.google_service import GoogleServices, get_google_services_factory

PNG_BYTES = b'\x89PNG\r\n\x1a\nfake-image-body'
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()

TOKEN_RESPONSE = {
    "access_token": "ya29.access",
    "refresh_token": "1//refresh",
    "expires_in": 3599,
    "scope": "https://www.googleapis.com/auth/drive.file https://www.googleapis.com/auth/spreadsheets",
    "token_type": "Bearer",
}


class _Request:
    def __init__(self, store, action, run):
        self._store = store
        self._action = action
        self._run = run

    def execute(self):
        self._store.calls.append(self._action)
        self._store.threads.append(threading.get_ident())
        if self._action == self._store.fail_on:
            resp = httplib2.Response({"status": 403, "reason": "Forbidden"})
            raise HttpError(resp, json.dumps({"error": {"message": "Quota exceeded"}}).encode())
        return self._run()


class FakeGoogle:
    """In-memory stand-in for the Drive v3 and Sheets v4 resources the export touches."""

    def __init__(self):
        self.uploads = []
        self.spreadsheets = {}
        self.calls = []
        self.threads = []
        self.fail_on = None
        self.factory_tokens = []

    # drive.files()
    def files(self):
        return self

    def create(self, body, media_body=None, fields=None):
        def run():
            file_id = f"file-{len(self.uploads) + 1}"
            self.uploads.append({"id": file_id, "name": body["name"], "mimeType": body["mimeType"],
                                 "data": media_body.getbytes(0, media_body.size()), "fields": fields})
            return {"id": file_id, "webViewLink": f"https://drive.google.com/file/d/{file_id}/view"}
        return _Request(self, "upload", run)

    def list(self, q, fields=None):
        def run():
            matches = [sid for sid, sheet in self.spreadsheets.items() if f"name = '{sheet['title']}'" in q]
            return {"files": [{"id": sid} for sid in matches]}
        return _Request(self, "list", run)

    def add_spreadsheet(self, spreadsheet_id, title, rows=None):
        self.spreadsheets[spreadsheet_id] = {"title": title, "sheets": [], "rows": list(rows or [])}


class FakeSheets:
    def __init__(self, store: FakeGoogle):
        self.store = store

    def spreadsheets(self):
        return self

    def values(self):
        return self

    def create(self, body):
        def run():
            spreadsheet_id = f"sheet-{len(self.store.spreadsheets) + 1}"
            self.store.add_spreadsheet(spreadsheet_id, body["properties"]["title"])
            self.store.spreadsheets[spreadsheet_id]["sheets"] = [s["properties"]["title"] for s in body["sheets"]]
            return {"spreadsheetId": spreadsheet_id}
        return _Request(self.store, "create_spreadsheet", run)

    def update(self, spreadsheetId, range, valueInputOption, body):
        def run():
            rows = self.store.spreadsheets[spreadsheetId]["rows"]
            rows[0:len(body["values"])] = body["values"]
            return {"updatedRange": range}
        return _Request(self.store, "write_header", run)

    def append(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self.store.spreadsheets[spreadsheetId]["rows"].extend(body["values"])
            return {"updates": {"updatedRange": range}}
        return _Request(self.store, "append", run)


@pytest.fixture
def oauth_settings():
    return GoogleOAuthSettings(client_id="client-123.apps.googleusercontent.com",
                               client_secret="shh", app_url="https://visionary.example.com")


@pytest.fixture
def token_requests():
    return []


@pytest.fixture
def token_transport(token_requests):
    def handler(request: httpx.Request):
        form = parse_qs(request.content.decode())
        token_requests.append(form)
        if form.get("code") == ["good-code"]:
            return httpx.Response(200, json=TOKEN_RESPONSE)
        if form.get("code") == ["no-access-token"]:
            return httpx.Response(200, json={"token_type": "Bearer"})
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Bad Request"})
    return httpx.MockTransport(handler)


@pytest.fixture
def oauth_client(oauth_settings, token_transport):
    return GoogleOAuthClient(oauth_settings, transport=token_transport)


@pytest.fixture
def fake_google():
    return FakeGoogle()


@pytest.fixture
def build_services(fake_google):
    def factory(tokens):
        fake_google.factory_tokens.append(tokens)
        return GoogleServices(drive=fake_google, sheets=FakeSheets(fake_google))
    return factory


@pytest.fixture
def client(oauth_client, build_services):
    from fastapi.testclient import TestClient
    from main import app

    app.dependency_overrides[get_oauth_client] = lambda: oauth_client
    app.dependency_overrides[get_google_services_factory] = lambda: build_services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
    yield engine
    await engine.dispose()
