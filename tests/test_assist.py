"""Tests for the LLM helpers (LLM calls are mocked)."""

from unittest.mock import patch

import pytest

from penguin_memo.assist import NOTE_OUTPUT_LIMIT, suggest_command, summarize_log
from penguin_memo.config import Config
from penguin_memo.llm import generate
from penguin_memo.models import Category


class TestSuggestCommand:
    @patch("penguin_memo.assist.generate")
    def test_plain_json_reply(self, mock_generate):
        mock_generate.return_value = (
            '{"command": "du -sh *", "description": "Size of each entry", "category": "File System"}'
        )
        suggestion = suggest_command("how big are these folders")
        assert suggestion.command == "du -sh *"
        assert suggestion.description == "Size of each entry"
        assert suggestion.category is Category.FILE_SYSTEM

    @patch("penguin_memo.assist.generate")
    def test_fenced_reply(self, mock_generate):
        mock_generate.return_value = (
            '```json\n{"command": "ss -tlnp", "description": "Listening ports", "category": "Network"}\n```'
        )
        suggestion = suggest_command("open ports")
        assert suggestion.command == "ss -tlnp"
        assert suggestion.category is Category.NETWORK

    @patch("penguin_memo.assist.generate")
    def test_reply_with_chatter(self, mock_generate):
        mock_generate.return_value = (
            'Sure! Here you go: {"command": "ps aux", "description": "", "category": "PROCESS"} Hope it helps.'
        )
        suggestion = suggest_command("list processes")
        assert suggestion.command == "ps aux"
        assert suggestion.category is Category.PROCESS

    @patch("penguin_memo.assist.generate")
    def test_unknown_category_falls_back_to_other(self, mock_generate):
        mock_generate.return_value = '{"command": "uptime", "description": "", "category": "Misc"}'
        assert suggest_command("uptime").category is Category.OTHER

    @patch("penguin_memo.assist.generate")
    def test_prompt_includes_query_and_categories(self, mock_generate):
        mock_generate.return_value = '{"command": "uptime"}'
        suggest_command("  how long has it been up  ")
        prompt = mock_generate.call_args[0][0]
        assert '"how long has it been up"' in prompt
        assert "Package Mgmt" in prompt

    @patch("penguin_memo.assist.generate")
    def test_invalid_json_raises(self, mock_generate):
        mock_generate.return_value = "I cannot help with that."
        with pytest.raises(ValueError):
            suggest_command("something")

    @patch("penguin_memo.assist.generate")
    def test_missing_command_raises(self, mock_generate):
        mock_generate.return_value = '{"description": "nothing"}'
        with pytest.raises(ValueError, match="command"):
            suggest_command("something")

    @patch("penguin_memo.assist.generate")
    def test_non_object_json_raises(self, mock_generate):
        mock_generate.return_value = '["ls"]'
        with pytest.raises(ValueError):
            suggest_command("something")


class TestSummarizeLog:
    @patch("penguin_memo.assist.generate")
    def test_returns_stripped_note(self, mock_generate):
        mock_generate.return_value = "  Checks disk usage; root is 30% full.\n"
        assert summarize_log("df -h", "/dev/sda1 40G 12G 28G 30% /") == "Checks disk usage; root is 30% full."

    @patch("penguin_memo.assist.generate")
    def test_output_is_truncated(self, mock_generate):
        mock_generate.return_value = "note"
        summarize_log("cat big.log", "x" * (NOTE_OUTPUT_LIMIT + 500))
        prompt = mock_generate.call_args[0][0]
        assert "x" * NOTE_OUTPUT_LIMIT in prompt
        assert "x" * (NOTE_OUTPUT_LIMIT + 1) not in prompt

    @patch("penguin_memo.assist.generate")
    def test_empty_output_placeholder(self, mock_generate):
        mock_generate.return_value = "note"
        summarize_log("systemctl restart nginx", "")
        assert "(No output)" in mock_generate.call_args[0][0]


class TestGenerate:
    @patch("penguin_memo.llm._call_anthropic")
    def test_routes_to_anthropic(self, mock_call, tmp_path, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        mock_call.return_value = "hello"
        config = Config(env_file=tmp_path / "env")
        assert generate("hi", config) == "hello"
        assert mock_call.call_args[0][2] == config.anthropic_model

    @patch("penguin_memo.llm._call_openai")
    def test_routes_to_openai(self, mock_call, tmp_path, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        mock_call.return_value = "hello"
        assert generate("hi", Config(env_file=tmp_path / "env")) == "hello"

    def test_unknown_provider(self, tmp_path):
        config = Config(env_file=tmp_path / "env", llm_provider="mistral")
        with pytest.raises(ValueError, match="Unknown provider"):
            generate("hi", config)
