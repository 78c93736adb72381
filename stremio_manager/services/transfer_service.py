"""
Export and import of accounts and the saved addon library.

Credentials are written in plaintext only when the caller opts in. Imported
accounts always get new ids and freshly encrypted credentials; an account
exported without credentials is imported with no auth key and error status
until credentials are supplied through update_account.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from stremio_manager.core.config import settings
from stremio_manager.core.exceptions import ValidationError
from stremio_manager.core.logging_config import log_error, log_info
from stremio_manager.core.time_utils import utc_now
from stremio_manager.models.enums import AccountStatus
from stremio_manager.schemas.account import Account, ApiKey
from stremio_manager.schemas.transfer import AccountExport, AccountExportDTO, ApiKeyExportDTO, ImportSummary
from stremio_manager.services.account_service import AccountService
from stremio_manager.services.saved_addon_service import SavedAddonLibrary

SUPPORTED_MAJOR_VERSION = "1"


class TransferService:
    """Service for exporting and importing vault data."""

    def __init__(self, accounts: AccountService, library: Optional[SavedAddonLibrary] = None):
        self.accounts = accounts
        self.library = library

    @property
    def cipher(self):
        return self.accounts.cipher

    def _account_to_dto(self, account: Account, include_credentials: bool) -> AccountExportDTO:
        dto = AccountExportDTO(
            name=account.name,
            email=account.email,
            addons=[addon.model_copy(deep=True) for addon in account.addons],
        )
        if include_credentials:
            dto.auth_key = self.cipher.try_decrypt(account.auth_key)
            dto.password = self.cipher.try_decrypt(account.password)
            dto.api_keys = [
                ApiKeyExportDTO(
                    service=key.service,
                    api_key=self.cipher.decrypt(key.api_key),
                    label=key.label,
                    metadata=key.metadata,
                    created_at=key.created_at,
                )
                for key in account.api_keys
            ]
        return dto

    def build_export(self, include_credentials: bool = False, include_saved_addons: bool = False) -> AccountExport:
        """
        Build the export envelope.

        Args:
            include_credentials: Include plaintext auth keys, passwords and API keys
            include_saved_addons: Include the saved addon library
        """
        export = AccountExport(
            version=settings.export_version,
            exported_at=utc_now(),
            accounts=[self._account_to_dto(acc, include_credentials) for acc in self.accounts.list_accounts()],
        )
        if include_saved_addons and self.library is not None:
            export.saved_addons = self.library.list_saved_addons()

        log_info(
            "Built export",
            accounts=len(export.accounts),
            saved_addons=len(export.saved_addons or []),
            include_credentials=include_credentials,
        )
        return export

    def export_json(self, include_credentials: bool = False, include_saved_addons: bool = False) -> str:
        export = self.build_export(include_credentials, include_saved_addons)
        return json.dumps(export.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2)

    @staticmethod
    def parse_export(payload: str | Dict[str, Any]) -> AccountExport:
        """
        Parse and validate an export document.

        Raises:
            ValidationError: Malformed JSON, unsupported version or invalid payload
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Import file is not valid JSON: {e.msg}") from e

        if not isinstance(payload, dict):
            raise ValidationError("Import file must contain a JSON object")

        try:
            export = AccountExport.model_validate(payload)
        except PydanticValidationError as e:
            log_error(e, action="import_validation")
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"Invalid import file at '{location}': {first['msg']}") from e

        if export.version.split(".")[0] != SUPPORTED_MAJOR_VERSION:
            raise ValidationError(f"Unsupported export version '{export.version}'")
        return export

    def _dto_to_account(self, dto: AccountExportDTO) -> Account:
        api_keys: List[ApiKey] = []
        for key in dto.api_keys or []:
            api_key = ApiKey(
                service=key.service.strip().lower(),
                api_key=self.cipher.encrypt(key.api_key),
                label=key.label,
                metadata=key.metadata,
            )
            if key.created_at is not None:
                api_key.created_at = key.created_at
            api_keys.append(api_key)

        return Account(
            name=dto.name,
            email=dto.email,
            auth_key=self.cipher.encrypt(dto.auth_key) if dto.auth_key else None,
            password=self.cipher.encrypt(dto.password) if dto.password else None,
            addons=dto.addons,
            api_keys=api_keys,
            last_sync=utc_now(),
            status=AccountStatus.ACTIVE if dto.auth_key else AccountStatus.ERROR,
        )

    def import_export(self, payload: str | Dict[str, Any]) -> ImportSummary:
        """
        Import accounts (and saved addons, when present) from an export document.

        Nothing is stored unless the whole document validates.
        """
        export = self.parse_export(payload)
        new_accounts = [self._dto_to_account(dto) for dto in export.accounts]
        self.accounts.add_imported_accounts(new_accounts)

        summary = ImportSummary(
            accounts_imported=len(new_accounts),
            accounts_without_credentials=sum(1 for acc in new_accounts if acc.auth_key is None),
        )

        if export.saved_addons:
            if self.library is None:
                summary.saved_addons_skipped = len(export.saved_addons)
            else:
                added = self.library.import_saved_addons(export.saved_addons)
                summary.saved_addons_imported = added
                summary.saved_addons_skipped = len(export.saved_addons) - added

        log_info(
            "Import complete",
            accounts=summary.accounts_imported,
            saved_addons=summary.saved_addons_imported,
            skipped=summary.saved_addons_skipped,
        )
        return summary
