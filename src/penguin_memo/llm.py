"""Thin text-generation abstraction over Anthropic and OpenAI."""

from __future__ import annotations

from .config import Config


def generate(
    prompt: str,
    config: Config | None = None,
    system_prompt: str = "",
    max_tokens: int = 1024,
) -> str:
    """Send a prompt to the configured LLM and return the response text."""
    if config is None:
        config = Config()

    provider = config.detect_provider()

    if provider == "anthropic":
        return _call_anthropic(system_prompt, prompt, config.anthropic_model, max_tokens)
    elif provider == "openai":
        return _call_openai(system_prompt, prompt, config.openai_model, max_tokens)
    else:
        raise ValueError(f"Unknown provider: {provider}")


def _call_anthropic(system_prompt: str, prompt: str, model: str, max_tokens: int = 1024) -> str:
    import anthropic

    client = anthropic.Anthropic()
    kwargs = {"system": system_prompt} if system_prompt else {}
    message = client.messages.create(
        model=model,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
        **kwargs,
    )
    return message.content[0].text


def _call_openai(system_prompt: str, prompt: str, model: str, max_tokens: int = 1024) -> str:
    import openai

    client = openai.OpenAI()
    messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
    messages.append({"role": "user", "content": prompt})
    response = client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        messages=messages,
    )
    return response.choices[0].message.content or ""
