"""
Google Sheets Service Adapter

Wraps the Sheets v4 API and the spreadsheet PDF export endpoint:
- Duplicate a tab into a temporary working copy
- Delete row/column ranges in one batched request
- Delete a tab
- Read cell values
- Export a tab as a paginated PDF

All failures surface as RemoteServiceError carrying the operation name.
"""

import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional

try:
    from google.auth.exceptions import GoogleAuthError
    from google.auth.transport.requests import AuthorizedSession
    from google.oauth2 import service_account
    from googleapiclient.discovery import build
    from googleapiclient.errors import HttpError
except ImportError:
    raise ImportError(
        "Google API libraries not installed. "
        "Install with: pip install google-auth google-api-python-client requests"
    )

import httplib2
import requests

from ..config_loader import config
from ..errors import ConfigError, RemoteServiceError
from ..models import DimensionDeletion, ExportOptions, GridDimensions, TempSheetHandle

logger = logging.getLogger(__name__)

# Failures of a Sheets API call: HTTP status errors, auth refresh errors and
# transport errors raised from execute() (timeouts, resets, httplib2)
API_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


def load_service_account_info(sa_json_base64: str) -> Dict[str, Any]:
    """
    Decode a base64-encoded service-account JSON key.
    
    Raises:
        ConfigError: If the value is not base64 JSON with client_email/private_key
    """
    try:
        info = json.loads(base64.b64decode(sa_json_base64).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
        raise ConfigError(f"SA_JSON_BASE64 is not base64-encoded JSON: {e}") from e
    
    missing = [k for k in ("client_email", "private_key") if not info.get(k)]
    if missing:
        raise ConfigError(f"Service account JSON missing field(s): {', '.join(missing)}")
    return info


class SheetsConnector:
    """
    Google Sheets connector bound to one spreadsheet.
    
    Authenticates with a service account, lazily builds the API client and
    exposes the handful of operations the export pipeline needs.
    """
    
    def __init__(
        self,
        spreadsheet_id: str,
        credentials_info: Optional[Dict[str, Any]] = None,
        scopes: Optional[List[str]] = None,
        credentials=None
    ):
        """
        Initialize Sheets connector.
        
        Args:
            spreadsheet_id: ID of the spreadsheet (from its URL)
            credentials_info: Decoded service-account JSON
            scopes: OAuth scopes (defaults to config value)
            credentials: Pre-built google.auth credentials (overrides credentials_info)
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_info = credentials_info
        self.scopes = scopes or config.get('google.scopes', [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive.readonly",
        ])
        self.export_url = config.get(
            'google.export_url',
            "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"
        ).format(spreadsheet_id=spreadsheet_id)
        self.timeout = config.get('google.request_timeout', 120)
        
        self._credentials = credentials
        self._service = None
        self._session = None
    
    def get_credentials(self):
        """
        Build service-account credentials.
        
        Raises:
            ConfigError: If no credentials were supplied
        """
        if self._credentials is not None:
            return self._credentials
        
        if not self.credentials_info:
            raise ConfigError("No service account credentials configured (SA_JSON_BASE64)")
        
        self._credentials = service_account.Credentials.from_service_account_info(
            self.credentials_info,
            scopes=self.scopes
        )
        logger.debug(f"Loaded service account {self.credentials_info.get('client_email')}")
        return self._credentials
    
    def get_service(self):
        """
        Get authenticated Sheets API service.
        
        Returns:
            Sheets v4 API service resource
        """
        if self._service:
            return self._service
        
        logger.info("Initializing Sheets API service")
        try:
            self._service = build(
                "sheets", "v4",
                credentials=self.get_credentials(),
                cache_discovery=False
            )
        except API_ERRORS as e:
            raise RemoteServiceError("connect", str(e)) from e
        return self._service
    
    def get_session(self) -> AuthorizedSession:
        """OAuth-authorized requests session for the export endpoint."""
        if self._session is None:
            self._session = AuthorizedSession(self.get_credentials())
        return self._session
    
    def _batch_update(self, requests_body: List[Dict], operation: str) -> Dict:
        try:
            return self.get_service().spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"requests": requests_body}
            ).execute()
        except API_ERRORS as e:
            logger.error(f"Sheets {operation} request failed: {e}")
            raise RemoteServiceError(operation, str(e)) from e
    
    def duplicate_sheet(
        self,
        source_sheet_id: int,
        new_name: str,
        insert_index: int = 0
    ) -> TempSheetHandle:
        """
        Duplicate a tab and return a handle to the copy.
        
        Args:
            source_sheet_id: Numeric tab ID (gid) to copy
            new_name: Title of the new tab
            insert_index: Position of the new tab
            
        Returns:
            TempSheetHandle with the new tab's ID and full grid size
        """
        response = self._batch_update([{
            "duplicateSheet": {
                "sourceSheetId": int(source_sheet_id),
                "insertSheetIndex": insert_index,
                "newSheetName": new_name,
            }
        }], "duplicate")
        
        try:
            props = response["replies"][0]["duplicateSheet"]["properties"]
            grid = props.get("gridProperties", {})
            handle = TempSheetHandle(
                sheet_id=int(props["sheetId"]),
                title=props.get("title", new_name),
                grid=GridDimensions(
                    row_count=int(grid.get("rowCount", 0)),
                    col_count=int(grid.get("columnCount", 0))
                )
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise RemoteServiceError("duplicate", f"unexpected response shape: {e}") from e
        
        logger.info(
            f"Duplicated tab {source_sheet_id} -> {handle.sheet_id} '{handle.title}' "
            f"({handle.grid.row_count}x{handle.grid.col_count})"
        )
        return handle
    
    def delete_dimensions(self, sheet_id: int, deletions: List[DimensionDeletion]) -> None:
        """
        Delete row/column ranges in a single batchUpdate.
        
        Requests are applied in order, so callers must list deletions such
        that earlier ones do not shift the indices of later ones.
        """
        if not deletions:
            logger.debug("No dimension deletions to submit")
            return
        
        self._batch_update([d.to_request(sheet_id) for d in deletions], "crop")
        logger.info(f"Deleted {len(deletions)} dimension range(s) on tab {sheet_id}")
    
    def delete_sheet(self, sheet_id: int) -> None:
        """Delete a tab."""
        self._batch_update([{"deleteSheet": {"sheetId": int(sheet_id)}}], "delete")
        logger.info(f"Deleted tab {sheet_id}")
    
    def get_sheet_title(self, sheet_id: int) -> str:
        """Resolve a numeric tab ID to its title."""
        try:
            meta = self.get_service().spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties(sheetId,title)"
            ).execute()
        except API_ERRORS as e:
            raise RemoteServiceError("read", str(e)) from e
        
        for sheet in meta.get("sheets", []):
            props = sheet.get("properties", {})
            if int(props.get("sheetId", -1)) == int(sheet_id):
                return props["title"]
        raise RemoteServiceError("read", f"tab {sheet_id} not found")
    
    def read_values(self, sheet_id: int, range_text: str) -> List[List[str]]:
        """
        Read formatted cell values from a tab.
        
        Args:
            sheet_id: Numeric tab ID
            range_text: A1 range without sheet prefix (e.g. 'A1:C5')
            
        Returns:
            Rows of cell strings (trailing empty cells omitted by the API)
        """
        title = self.get_sheet_title(sheet_id)
        quoted = title.replace("'", "''")
        try:
            result = self.get_service().spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=f"'{quoted}'!{range_text}",
                valueRenderOption="FORMATTED_VALUE"
            ).execute()
        except API_ERRORS as e:
            logger.error(f"Failed to read values {range_text} from '{title}': {e}")
            raise RemoteServiceError("read", str(e)) from e
        
        rows = result.get("values", [])
        logger.debug(f"Read {len(rows)} row(s) from '{title}'!{range_text}")
        return [[str(cell) for cell in row] for row in rows]
    
    def export_pdf(self, sheet_id: int, options: ExportOptions) -> bytes:
        """
        Export a tab as a PDF document.
        
        Args:
            sheet_id: Numeric tab ID (gid)
            options: Page layout options
            
        Returns:
            Raw PDF bytes
        """
        params = options.to_query_params()
        params["gid"] = str(sheet_id)
        
        logger.debug(f"Export URL: {self.export_url} params={params}")
        
        try:
            response = self.get_session().get(self.export_url, params=params, timeout=self.timeout)
        except (requests.RequestException, GoogleAuthError, OSError) as e:
            raise RemoteServiceError("export", str(e)) from e
        
        if response.status_code != 200:
            raise RemoteServiceError(
                "export",
                f"HTTP {response.status_code}: {response.text[:500]}"
            )
        
        pdf_bytes = response.content
        if not pdf_bytes.startswith(b"%PDF"):
            raise RemoteServiceError("export", "response is not a PDF document")
        
        logger.info(f"Exported tab {sheet_id} as PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes
