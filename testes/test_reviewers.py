import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cms_migrator.exceptions import LLMError
from cms_migrator.reviewers.body_rewriter import (
    TRUNCATION_MARKER,
    build_rewrite_prompt,
    get_rewritten_body,
    strip_code_fence,
)
from cms_migrator.reviewers.rendering_checker import (
    build_rendering_prompt,
    check_rendering,
    parse_rendering_response,
)
from cms_migrator.services.llm import LLMProvider


class ScriptedLLM(LLMProvider):
    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def complete(self, prompt, max_tokens, images=None):
        self.calls.append({"prompt": prompt, "max_tokens": max_tokens, "images": images})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_non_json_rendering_response_is_a_rendering_failure():
    assert parse_rendering_response("Looks good to me!") == {
        "isProperlyRendered": False,
        "issues": ["Error parsing AI response"],
    }


def test_wrong_shape_rendering_response_is_a_rendering_failure():
    expected = {"isProperlyRendered": False, "issues": ["Error parsing AI response"]}
    assert parse_rendering_response('["not", "an", "object"]') == expected
    assert parse_rendering_response('{"isProperlyRendered": "yes", "issues": []}') == expected
    assert parse_rendering_response('{"isProperlyRendered": true}') == expected


def test_valid_rendering_response():
    result = parse_rendering_response('{"isProperlyRendered": false, "issues": ["Broken image"]}')
    assert result == {"isProperlyRendered": False, "issues": ["Broken image"]}


def test_rendering_prompt_truncates_html_and_previews_body():
    record = {"title": "T", "authorName": "A", "body": "b" * 600}
    prompt = build_rendering_prompt("x" * 20_000, record)
    assert "x" * 15_000 + " " + TRUNCATION_MARKER in prompt
    assert "x" * 15_001 not in prompt
    assert "b" * 500 + "..." in prompt
    assert "b" * 501 not in prompt
    assert "- Title: T" in prompt


def test_check_rendering_sends_screenshot():
    llm = ScriptedLLM('{"isProperlyRendered": true, "issues": []}')
    result = check_rendering(llm, "<div>ok</div>", {"title": "T", "body": ""}, screenshot=b"png", max_tokens=4000)
    assert result == {"isProperlyRendered": True, "issues": []}
    assert llm.calls[0]["images"] == [b"png"]
    assert llm.calls[0]["max_tokens"] == 4000


def test_check_rendering_llm_failure():
    llm = ScriptedLLM(LLMError("boom"))
    result = check_rendering(llm, "<div/>", {"title": "T"})
    assert result["isProperlyRendered"] is False
    assert result["issues"] == ["Error checking rendering: boom"]


def test_rewrite_prompt_truncates_each_html_input():
    prompt = build_rewrite_prompt("o" * 12_000, "<p>new</p>", "markdown body", kind="project page")
    assert "o" * 10_000 + " " + TRUNCATION_MARKER in prompt
    assert "o" * 10_001 not in prompt
    assert "<p>new</p>" in prompt
    assert "markdown body" in prompt
    assert "project pages" in prompt


def test_rewritten_body_is_returned_without_fence():
    llm = ScriptedLLM("```markdown\nFixed body\n\n<Embed url=\"u\" />\n```")
    body = get_rewritten_body(llm, "<div>old</div>", "<div>new</div>", "original", max_tokens=100)
    assert body == 'Fixed body\n\n<Embed url="u" />'
    assert llm.calls[0]["max_tokens"] == 100


def test_rewrite_falls_back_to_original_on_llm_failure():
    llm = ScriptedLLM(LLMError("rate limited"))
    assert get_rewritten_body(llm, "<div>old</div>", "<div>new</div>", "original") == "original"


def test_rewrite_with_missing_input_skips_llm():
    llm = ScriptedLLM()
    assert get_rewritten_body(llm, "", "<div>new</div>", "original") == "original"
    assert get_rewritten_body(llm, "<div>old</div>", "", "original") == "original"
    assert llm.calls == []


def test_rewrite_empty_reply_keeps_original():
    llm = ScriptedLLM("   ")
    assert get_rewritten_body(llm, "<div>old</div>", "<div>new</div>", "original") == "original"


def test_strip_code_fence():
    assert strip_code_fence("```\na\n```") == "a"
    assert strip_code_fence("plain\n") == "plain"
    assert strip_code_fence("text with ``` inside") == "text with ``` inside"
