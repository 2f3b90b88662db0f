"""Tests for channel config parsing and masking"""

import pytest

from notify_hub.errors import InvalidConfig
from notify_hub.schemas.channel import (
    SECRET_MASK,
    ChannelType,
    DingTalkConfig,
    EmailConfig,
    WebhookConfig,
    dump_channel_config,
    parse_channel_config,
    restore_masked_secrets,
)


class TestParseChannelConfig:
    def test_picks_variant_from_type(self):
        cfg = parse_channel_config(
            {"name": "bot", "type": "dingtalk", "dingtalk_webhook": "https://oapi.dingtalk.com/robot/send"}
        )
        assert isinstance(cfg, DingTalkConfig)
        assert cfg.enabled is True
        assert cfg.key == ("bot", "dingtalk")

    def test_fields_of_other_variants_are_dropped(self):
        cfg = parse_channel_config(
            {
                "name": "bot",
                "type": "feishu",
                "feishu_webhook": "https://open.feishu.cn/open-apis/bot/v2/hook/x",
                "dingtalk_webhook": "https://stale.example.com",
                "smtp_password": "stale",
            }
        )
        dumped = cfg.model_dump()
        assert "dingtalk_webhook" not in dumped
        assert "smtp_password" not in dumped

    def test_accepts_enum_type(self):
        cfg = parse_channel_config(
            {"name": "w", "type": ChannelType.WECHAT, "wechat_webhook": "https://qyapi.weixin.qq.com/x"}
        )
        assert cfg.type == "wechat"

    def test_unknown_type(self):
        with pytest.raises(InvalidConfig, match="type"):
            parse_channel_config({"name": "x", "type": "pigeon"})

    def test_missing_type(self):
        with pytest.raises(InvalidConfig, match="type"):
            parse_channel_config({"name": "x"})

    def test_missing_required_field_is_named(self):
        with pytest.raises(InvalidConfig, match="dingtalk_webhook"):
            parse_channel_config({"name": "x", "type": "dingtalk"})

    def test_blank_name_rejected(self):
        with pytest.raises(InvalidConfig, match="name"):
            parse_channel_config({"name": "  ", "type": "wechat", "wechat_webhook": "https://a.b/c"})

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/hook", "https://"])
    def test_webhook_url_must_be_http(self, url):
        with pytest.raises(InvalidConfig, match="webhook_url"):
            parse_channel_config({"name": "x", "type": "webhook", "webhook_url": url})

    def test_webhook_defaults_and_method_case(self):
        cfg = parse_channel_config({"name": "x", "type": "webhook", "webhook_url": "https://a.b/c"})
        assert isinstance(cfg, WebhookConfig)
        assert cfg.webhook_method == "POST"
        assert cfg.webhook_headers == {}

        cfg = parse_channel_config(
            {"name": "x", "type": "webhook", "webhook_url": "https://a.b/c", "webhook_method": "put"}
        )
        assert cfg.webhook_method == "PUT"

    def test_webhook_method_restricted(self):
        with pytest.raises(InvalidConfig, match="webhook_method"):
            parse_channel_config(
                {"name": "x", "type": "webhook", "webhook_url": "https://a.b/c", "webhook_method": "GET"}
            )


class TestEmailConfig:
    @pytest.fixture
    def base(self):
        return {
            "name": "mail",
            "type": "email",
            "smtp_host": "smtp.example.com",
            "smtp_port": 587,
            "smtp_user": "me@example.com",
            "email_to": ["you@example.com"],
        }

    def test_valid(self, base):
        cfg = parse_channel_config(base)
        assert isinstance(cfg, EmailConfig)
        assert cfg.sender == "me@example.com"

    def test_smtp_from_wins_over_user(self, base):
        cfg = parse_channel_config({**base, "smtp_from": "alerts@example.com"})
        assert cfg.sender == "alerts@example.com"

    def test_empty_recipients_rejected(self, base):
        with pytest.raises(InvalidConfig, match="email_to"):
            parse_channel_config({**base, "email_to": []})

    def test_bad_recipient_rejected(self, base):
        with pytest.raises(InvalidConfig, match="invalid email address: nobody"):
            parse_channel_config({**base, "email_to": ["ok@example.com", "nobody"]})

    @pytest.mark.parametrize("port", [0, 65536, -25])
    def test_port_out_of_range(self, base, port):
        with pytest.raises(InvalidConfig, match="smtp_port"):
            parse_channel_config({**base, "smtp_port": port})

    def test_sender_required(self, base):
        data = {k: v for k, v in base.items() if k != "smtp_user"}
        with pytest.raises(InvalidConfig, match="smtp_from is required"):
            parse_channel_config(data)


class TestSecretMasking:
    def test_dump_masks_secrets(self, email_config, dingtalk_config):
        assert dump_channel_config(email_config, mask_secrets=True)["smtp_password"] == SECRET_MASK
        assert dump_channel_config(dingtalk_config, mask_secrets=True)["dingtalk_secret"] == SECRET_MASK
        assert dump_channel_config(dingtalk_config)["dingtalk_secret"] == "SECabc"

    def test_empty_secret_not_masked(self):
        cfg = parse_channel_config({"name": "f", "type": "feishu", "feishu_webhook": "https://a.b/c"})
        assert dump_channel_config(cfg, mask_secrets=True)["feishu_secret"] is None

    def test_restore_masked_secret(self, email_config):
        payload = dump_channel_config(email_config, mask_secrets=True)
        payload["email_to"] = ["c@example.com"]

        restored = restore_masked_secrets(payload, email_config)

        assert restored["smtp_password"] == "hunter2"
        assert restored["email_to"] == ["c@example.com"]

    @pytest.mark.parametrize(
        "change",
        [{"smtp_host": "smtp.attacker.example"}, {"smtp_port": 25}, {"smtp_user": "someone@example.com"}],
    )
    def test_masked_password_bound_to_server(self, email_config, change):
        payload = {**dump_channel_config(email_config, mask_secrets=True), **change}

        with pytest.raises(InvalidConfig, match="smtp_password: re-enter the secret"):
            restore_masked_secrets(payload, email_config)

    def test_port_given_as_string_still_matches(self, email_config):
        payload = {**dump_channel_config(email_config, mask_secrets=True), "smtp_port": "465"}

        assert restore_masked_secrets(payload, email_config)["smtp_password"] == "hunter2"

    def test_masked_sign_secret_bound_to_webhook(self, dingtalk_config):
        payload = dump_channel_config(dingtalk_config, mask_secrets=True)
        payload["dingtalk_webhook"] = "https://evil.example.com/robot"

        with pytest.raises(InvalidConfig, match="dingtalk_secret"):
            restore_masked_secrets(payload, dingtalk_config)

    def test_credential_headers_masked(self, webhook_config):
        cfg = parse_channel_config(
            {
                **dump_channel_config(webhook_config),
                "webhook_headers": {"Authorization": "Bearer t0k3n", "X-Api-Key": "k1", "X-Team": "ops"},
            }
        )

        headers = dump_channel_config(cfg, mask_secrets=True)["webhook_headers"]

        assert headers == {"Authorization": SECRET_MASK, "X-Api-Key": SECRET_MASK, "X-Team": "ops"}
        assert dump_channel_config(cfg)["webhook_headers"]["Authorization"] == "Bearer t0k3n"

    def test_masked_header_restored_case_insensitively(self, webhook_config):
        payload = dump_channel_config(webhook_config, mask_secrets=True)
        payload["webhook_headers"] = {"authorization": SECRET_MASK}

        restored = restore_masked_secrets(payload, webhook_config)

        assert restored["webhook_headers"] == {"authorization": "Bearer t0k3n"}

    def test_masked_header_bound_to_url(self, webhook_config):
        payload = dump_channel_config(webhook_config, mask_secrets=True)
        payload["webhook_url"] = "https://evil.example.com/collect"

        with pytest.raises(InvalidConfig, match="webhook_headers.Authorization"):
            restore_masked_secrets(payload, webhook_config)

    def test_masked_header_without_stored_value(self, webhook_config):
        payload = dump_channel_config(webhook_config, mask_secrets=True)
        payload["webhook_headers"] = {"X-Token": SECRET_MASK}

        with pytest.raises(InvalidConfig, match="no stored value"):
            restore_masked_secrets(payload, webhook_config)

    def test_new_secret_kept(self, email_config):
        payload = {**dump_channel_config(email_config), "smtp_password": "new-pass"}
        assert restore_masked_secrets(payload, email_config)["smtp_password"] == "new-pass"
