"""Single-turn completion calls used to classify review comments."""

import os
os.environ.pop("CLAUDECODE", None)  # Allow nested Claude SDK calls from within Claude Code

import logging

from claude_agent_sdk import (
    ClaudeSDKClient,
    ClaudeAgentOptions,
    AssistantMessage,
    ResultMessage,
    TextBlock,
)

from config import settings

logger = logging.getLogger(__name__)


class ClassifierError(RuntimeError):
    """The completion call finished with an error result."""


async def classify(system_prompt: str, user_prompt: str) -> str:
    """Run one completion and return the last text block of the reply.

    No tools are exposed and the conversation is limited to a single turn, so
    the model acts as a plain text classifier.
    """
    options = ClaudeAgentOptions(
        system_prompt=system_prompt,
        model=settings.CLASSIFIER_MODEL,
        mcp_servers={},
        allowed_tools=[],
        permission_mode="bypassPermissions",
        max_turns=1,
    )

    text_blocks: list[str] = []
    client = ClaudeSDKClient(options=options)
    await client.connect()
    try:
        await client.query(user_prompt)
        async for message in client.receive_response():
            if isinstance(message, ResultMessage):
                if message.is_error:
                    logger.error(f"Classifier error: {message.result}")
                    raise ClassifierError(str(message.result))
            elif isinstance(message, AssistantMessage):
                for block in message.content:
                    if isinstance(block, TextBlock):
                        text_blocks.append(block.text)
    finally:
        await client.disconnect()

    return text_blocks[-1] if text_blocks else ""
