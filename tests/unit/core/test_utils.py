"""Tests for input helpers."""

import pytest

from core.errors import AuthenticationError, ValidationError
from core.utils import extract_bearer_token, redact_token, strip_code_fence, validate_markdown


class TestValidateMarkdown:
    def test_valid_markdown(self):
        assert validate_markdown("# Title") == "# Title"

    def test_missing_raises_error(self):
        with pytest.raises(ValidationError, match="Missing required field: output"):
            validate_markdown(None)

    def test_non_string_raises_error(self):
        with pytest.raises(ValidationError):
            validate_markdown(42)

    def test_whitespace_only_raises_error(self):
        with pytest.raises(ValidationError):
            validate_markdown("  \n ")

    def test_param_name_in_message(self):
        with pytest.raises(ValidationError, match="markdown"):
            validate_markdown(None, "markdown")


class TestStripCodeFence:
    @pytest.mark.parametrize("opener", ["```markdown\n", "```md\n", "```\n"])
    def test_wrapper_removed(self, opener):
        assert strip_code_fence(f"{opener}# Title\n```") == "# Title\n"

    def test_surrounding_whitespace_tolerated(self):
        assert strip_code_fence("\n  ```markdown\nbody\n```  \n") == "body\n"

    def test_partial_fence_kept(self):
        text = "```python\nx = 1\n```\n\nafter"
        assert strip_code_fence(text) == text

    def test_plain_text_unchanged(self):
        assert strip_code_fence("# Title") == "# Title"


class TestExtractBearerToken:
    def test_valid_header(self):
        assert extract_bearer_token("Bearer ya29.abc") == "ya29.abc"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_invalid_header(self, header):
        with pytest.raises(AuthenticationError):
            extract_bearer_token(header)


class TestRedactToken:
    def test_long_token_shortened(self):
        assert redact_token("ya29.abcdefghijk") == "ya29.abcde..."

    def test_empty_passthrough(self):
        assert redact_token(None) is None
        assert redact_token("") == ""
