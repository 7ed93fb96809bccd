from typing import Any

import pytest

from llm_dispatcher import Dispatcher
from llm_dispatcher.protocols import ProviderProtocol


class TestProviderProtocol:
    def test_runtime_checkable(self):
        """Verify ProviderProtocol is runtime checkable."""

        class ValidProvider:
            @property
            def name(self) -> str:
                return "gateway"

            async def invoke(
                self, messages: list[dict[str, str]], model_id: str, options: dict[str, Any]
            ) -> str:
                return "ok"

        assert isinstance(ValidProvider(), ProviderProtocol)

    def test_missing_invoke(self):
        """An object without invoke is not a provider."""

        class NoInvoke:
            name = "broken"

        assert not isinstance(NoInvoke(), ProviderProtocol)

    @pytest.mark.asyncio
    async def test_plain_class_drives_dispatcher(self):
        """A plain class with name and invoke works as a dispatcher provider."""

        class EchoProvider:
            name = "echo"

            async def invoke(
                self, messages: list[dict[str, str]], model_id: str, options: dict[str, Any]
            ) -> str:
                return f"echo from {model_id}: {messages[-1]['content']}"

        async with Dispatcher(EchoProvider()) as dispatcher:
            response = await dispatcher.call("Say something nice today")

        assert response.result == "echo from gemini: Say something nice today"
