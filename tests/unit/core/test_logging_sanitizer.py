"""
Unit tests for log sanitization.
"""
import logging

from stremio_manager.core.logging_config import LogCategory, _sanitize_data, log_account_action, mask_url_secrets


def test_mask_url_secrets_hides_debrid_keys():
    url = "https://torrentio.strem.fun/qualityfilter=480p|realdebrid=SECRETKEY|sort=size/manifest.json"

    masked = mask_url_secrets(url)

    assert "SECRETKEY" not in masked
    assert "realdebrid=***" in masked
    assert "qualityfilter=480p" in masked
    assert "sort=size" in masked


def test_mask_url_secrets_leaves_plain_urls_alone():
    url = "https://v3-cinemeta.strem.io/manifest.json"
    assert mask_url_secrets(url) == url


def test_sensitive_keys_are_masked_recursively():
    data = {
        "account_id": "a1",
        "authKey": "plain-auth-key",
        "nested": {"password": "hunter2", "api_key": "abc"},
        "urls": ["https://torrentio.strem.fun/torbox=TBKEY/manifest.json"],
    }

    sanitized = _sanitize_data(data)

    assert sanitized["account_id"] == "a1"
    assert sanitized["authKey"] == "***MASKED***"
    assert sanitized["nested"] == {"password": "***MASKED***", "api_key": "***MASKED***"}
    assert "TBKEY" not in sanitized["urls"][0]


def test_account_action_log_masks_context(caplog):
    with caplog.at_level(logging.INFO, logger=LogCategory.ACCOUNT_ACTIONS.value):
        log_account_action("a1", "updated", auth_key="plain-auth-key", addons=3)

    assert "Account a1 updated" in caplog.text
    assert "addons=3" in caplog.text
    assert "plain-auth-key" not in caplog.text
