# backend/services/export_service.py
import base64
import binascii
import io
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from starlette.concurrency import run_in_threadpool
from errors import NotAuthenticatedError, UpstreamError
from models import ExportRecord, OAuthTokenSet
from services.google_service import GoogleServices

logger = logging.getLogger(__name__)

SPREADSHEET_NAME = 'Visionary AI Generations'
SPREADSHEET_MIME_TYPE = 'application/vnd.google-apps.spreadsheet'
SHEET_NAME = 'Generations'
HEADER_ROW = ['Timestamp', 'Prompt', 'Aspect Ratio', 'Drive Link']


async def _execute(request):
    # googleapiclient is blocking; keep it off the event loop
    try:
        return await run_in_threadpool(request.execute)
    except HttpError as error:
        raise UpstreamError(getattr(error, 'reason', None) or str(error)) from error


def decode_data_uri(image_data: str) -> bytes:
    """Returns the bytes of a base64 data-URI payload (everything after the comma)."""
    _, sep, payload = (image_data or "").partition(',')
    if not sep or not payload:
        raise ValueError("Image data must be a base64 data URI")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Image data is not valid base64: {e}") from e


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


async def upload_image(drive, data: bytes) -> tuple[str, str]:
    media = MediaIoBaseUpload(io.BytesIO(data), mimetype='image/png', resumable=False)
    created = await _execute(drive.files().create(
        body={'name': f"Visionary_{int(time.time() * 1000)}.png", 'mimeType': 'image/png'},
        media_body=media, fields='id, webViewLink',
    ))
    return created['id'], created.get('webViewLink', '')


async def find_or_create_spreadsheet(drive, sheets) -> str:
    # First match wins; duplicates by name are not reconciled.
    listing = await _execute(drive.files().list(
        q=f"name = '{SPREADSHEET_NAME}' and mimeType = '{SPREADSHEET_MIME_TYPE}'",
        fields='files(id)',
    ))
    files = listing.get('files') or []
    if files:
        return files[0]['id']

    created = await _execute(sheets.spreadsheets().create(body={
        'properties': {'title': SPREADSHEET_NAME},
        'sheets': [{'properties': {'title': SHEET_NAME}}],
    }))
    spreadsheet_id = created['spreadsheetId']
    await _execute(sheets.spreadsheets().values().update(
        spreadsheetId=spreadsheet_id, range=f'{SHEET_NAME}!A1:D1',
        valueInputOption='RAW', body={'values': [HEADER_ROW]},
    ))
    logger.info("Created spreadsheet '%s' (%s)", SPREADSHEET_NAME, spreadsheet_id)
    return spreadsheet_id


async def append_record(sheets, spreadsheet_id: str, record: ExportRecord) -> None:
    await _execute(sheets.spreadsheets().values().append(
        spreadsheetId=spreadsheet_id, range=f'{SHEET_NAME}!A:D',
        valueInputOption='RAW', body={'values': [record.as_row()]},
    ))


async def export_to_google(tokens: Optional[OAuthTokenSet], build_services: Callable[[OAuthTokenSet], GoogleServices],
                           image_data: str, prompt: str, aspect_ratio: str) -> str:
    """Uploads the image to Drive and logs it in the generations spreadsheet.

    The three steps run in order and the first failure aborts the export.
    Nothing is rolled back, so a failed append can leave the uploaded file
    in Drive. Returns the file's view link.
    """
    if tokens is None or not tokens.access_token:
        raise NotAuthenticatedError()

    data = decode_data_uri(image_data)
    services = build_services(tokens)

    file_id, file_link = await upload_image(services.drive, data)
    logger.info("Uploaded image %s to Drive", file_id)

    spreadsheet_id = await find_or_create_spreadsheet(services.drive, services.sheets)

    record = ExportRecord(timestamp=utc_now_iso(), prompt=prompt, aspectRatio=aspect_ratio, driveLink=file_link)
    await append_record(services.sheets, spreadsheet_id, record)
    return file_link
