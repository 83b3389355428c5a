"""Validate the structlog processors."""

import asyncio

from clinic_portal.core.logging import (
    add_correlation_id,
    get_correlation_id,
    redact_secrets,
    set_correlation_id,
)


class TestRedaction:
    """Test token masking."""

    def test_long_token_keeps_last_four(self):
        event = redact_secrets(None, "info", {"event": "x", "token": "secret-token-1234"})
        assert event["token"] == "***1234"

    def test_short_values_fully_masked(self):
        event = redact_secrets(None, "info", {"authorization": "abc"})
        assert event["authorization"] == "***"

    def test_other_fields_untouched(self):
        event = redact_secrets(None, "info", {"endpoint": "/clients", "status_code": 200})
        assert event == {"endpoint": "/clients", "status_code": 200}


class TestCorrelationId:
    """Test correlation id propagation."""

    def test_explicit_id_is_added(self):
        async def scenario():
            set_correlation_id("req-42")
            return add_correlation_id(None, "info", {"event": "x"})

        event = asyncio.run(scenario())
        assert event["correlation_id"] == "req-42"

    def test_generated_id(self):
        async def scenario():
            return set_correlation_id(), get_correlation_id()

        generated, current = asyncio.run(scenario())
        assert len(generated) == 8
        assert current == generated

    def test_ids_are_task_local(self):
        async def tagged(value):
            set_correlation_id(value)
            await asyncio.sleep(0)
            return get_correlation_id()

        async def scenario():
            return await asyncio.gather(tagged("a"), tagged("b"))

        assert asyncio.run(scenario()) == ["a", "b"]
