"""LLM scope classifier deciding whether a prompt is about dysarthria."""

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger()

FEW_SHOT_EXAMPLES: list[dict[str, str]] = [
    # Educational
    {"prompt": "Why is the /s/ sound hard for someone with dysarthria?", "label": "allowed"},
    {"prompt": "I can't pronounce R clearly, what can I do?", "label": "allowed"},
    # Practice
    {"prompt": "Give me 10 /s/ words to practice", "label": "allowed"},
    {"prompt": "Provide simple phrases to practice loudness", "label": "allowed"},
    # General dysarthria information
    {"prompt": "What is dysarthria and what causes it?", "label": "allowed"},
    # Coding / unrelated
    {"prompt": "What is React?", "label": "disallowed"},
    {"prompt": "Write me JavaScript code", "label": "disallowed"},
    {"prompt": "How do I hack a WiFi password?", "label": "disallowed"},
]

CLASSIFIER_SYSTEM_PROMPT = """\
You are a classification model.
Your job is ONLY to decide whether a user prompt is related to dysarthria or not.

Allowed = speech therapy, dysarthria, articulation, pronunciation practice.
Disallowed = coding, finance, tech, hacking, general medical unrelated topics.

Return ONLY JSON using this format:
{
  "label": "allowed" | "disallowed" | "uncertain",
  "confidence": <number between 0 and 1>,
  "reason": "<short explanation>"
}

DO NOT give therapy instructions.
DO NOT shorten or rewrite the user's prompt.
DO NOT return anything except JSON.
"""


def build_messages(prompt: str) -> list[dict[str, str]]:
    """Few-shot chat messages followed by the prompt to classify."""
    messages = [{"role": "system", "content": CLASSIFIER_SYSTEM_PROMPT}]
    for example in FEW_SHOT_EXAMPLES:
        messages.append({"role": "user", "content": f'Example prompt: "{example["prompt"]}"'})
        messages.append({"role": "assistant", "content": f"Label: {example['label']}"})
    messages.append({"role": "user", "content": f'Classify this prompt: "{prompt}"'})
    return messages


class ScopeClassifierClient:
    """Calls the chat model and returns its raw text.

    Transport errors propagate; PromptGate turns them into an uncertain verdict.

    Args:
        api_key: OpenAI API key.
        model: Model used for classification.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def classify(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=build_messages(prompt),
            temperature=0.0,
        )
        return response.choices[0].message.content or ""
