import random
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from schedule_health.analysis.variance_engine import VarianceSummary
from schedule_health.narrative.client import (
    TRUNCATION_NOTE,
    NarrativeClient,
    NarrativeError,
    redact,
)
from schedule_health.narrative.prompt import (
    ChartDirective,
    build_narrative_prompt,
    build_project_summary,
    extract_chart_directive,
)
from schedule_health.narrative.retry import RetryableStatusError, RetryPolicy


def fake_response(status=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


def reply(content, finish_reason="stop"):
    return {"choices": [{"message": {"content": content}, "finish_reason": finish_reason}]}


def make_client(session, **kwargs):
    return NarrativeClient(
        endpoint="https://example-resource.openai.azure.com/",
        api_key="secret",
        deployment="gpt",
        session=session,
        retry_policy=RetryPolicy(rng=random.Random(0)),
        **kwargs,
    )


MESSAGES = [{"role": "user", "content": "hi"}]


# ----------------------------------------------------------------
# 1. RETRY POLICY
# ----------------------------------------------------------------
def test_delay_grows_exponentially_and_is_capped():
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=0)

    assert [policy.delay_for(a) for a in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_jitter_is_bounded():
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=1.0, rng=random.Random(42))

    for attempt in range(4):
        base = min(2 ** attempt, 5.0)
        assert base <= policy.delay_for(attempt) <= base + 1.0


def test_retries_retryable_errors_then_succeeds():
    calls = []
    sleeps = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise requests.ConnectionError("down")
        return "ok"

    assert RetryPolicy(jitter=0).call(flaky, sleep=sleeps.append) == "ok"
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]


def test_non_retryable_error_is_raised_immediately():
    fn = MagicMock(side_effect=ValueError("bad"))

    with pytest.raises(ValueError):
        RetryPolicy().call(fn, sleep=lambda s: None)
    assert fn.call_count == 1


def test_last_error_raised_when_attempts_exhausted():
    fn = MagicMock(side_effect=RetryableStatusError(503))

    with pytest.raises(RetryableStatusError):
        RetryPolicy(max_attempts=3).call(fn, sleep=lambda s: None)
    assert fn.call_count == 3


# ----------------------------------------------------------------
# 2. CLIENT
# ----------------------------------------------------------------
def test_send_message_posts_chat_completion():
    session = MagicMock()
    session.post.return_value = fake_response(payload=reply("## Overview"))
    client = make_client(session)

    assert client.send_message(MESSAGES) == "## Overview"

    args, kwargs = session.post.call_args
    assert args[0] == (
        "https://example-resource.openai.azure.com/openai/deployments/gpt"
        "/chat/completions?api-version=2025-01-01-preview"
    )
    assert kwargs["headers"]["api-key"] == "secret"
    assert kwargs["json"] == {"messages": MESSAGES}
    assert kwargs["timeout"] == 30


def test_truncated_reply_gets_note():
    session = MagicMock()
    session.post.return_value = fake_response(payload=reply("partial", finish_reason="length"))

    assert make_client(session).send_message(MESSAGES) == "partial" + TRUNCATION_NOTE


def test_server_errors_are_retried():
    session = MagicMock()
    session.post.side_effect = [
        fake_response(status=502, text="bad gateway"),
        fake_response(payload=reply("done")),
    ]

    assert make_client(session).send_message(MESSAGES, sleep=lambda s: None) == "done"
    assert session.post.call_count == 2


def test_client_errors_are_not_retried_and_redacted():
    session = MagicMock()
    session.post.return_value = fake_response(
        status=401, text="Invalid api-key for https://internal.example.com from 10.1.2.3"
    )

    with pytest.raises(NarrativeError) as exc:
        make_client(session).send_message(MESSAGES, sleep=lambda s: None)

    assert session.post.call_count == 1
    message = str(exc.value)
    assert "https://" not in message
    assert "10.1.2.3" not in message
    assert "api-key" not in message


def test_exhausted_timeouts_surface_as_one_error():
    session = MagicMock()
    session.post.side_effect = requests.Timeout("read timed out")

    with pytest.raises(NarrativeError, match="timed out"):
        make_client(session).send_message(MESSAGES, sleep=lambda s: None)
    assert session.post.call_count == 3


def test_malformed_body_is_not_retried():
    session = MagicMock()
    session.post.return_value = fake_response(payload={"unexpected": True})

    with pytest.raises(NarrativeError, match="Invalid response format"):
        make_client(session).send_message(MESSAGES, sleep=lambda s: None)
    assert session.post.call_count == 1


def test_missing_configuration_fails_without_request():
    session = MagicMock()
    client = NarrativeClient(endpoint="", api_key="", deployment="", session=session)

    with pytest.raises(NarrativeError, match="not configured"):
        client.send_message(MESSAGES)
    session.post.assert_not_called()


def test_from_settings_reads_keys():
    settings = SimpleNamespace(
        NARRATIVE_ENDPOINT="https://svc",
        NARRATIVE_API_KEY="k",
        NARRATIVE_DEPLOYMENT="d",
        NARRATIVE_API_VERSION="2024-06-01",
        NARRATIVE_TIMEOUT=10,
        NARRATIVE_MAX_ATTEMPTS=5,
        NARRATIVE_BASE_DELAY=0.5,
        NARRATIVE_MAX_DELAY=2.0,
    )
    client = NarrativeClient.from_settings(settings, session=MagicMock())

    assert client.is_configured
    assert client.timeout == 10
    assert client.retry_policy.max_attempts == 5
    assert "api-version=2024-06-01" in client.url


def test_redact():
    text = redact("API key rejected by http://10.0.0.1:8080/path (api_key=abc)")

    assert "[URL]" in text
    assert "credentials" in text
    assert "10.0.0.1" not in text


# ----------------------------------------------------------------
# 3. PROMPT + CHART DIRECTIVE
# ----------------------------------------------------------------
def test_project_summary_and_prompt_are_deterministic(snapshot_builder):
    snap = snapshot_builder([
        {"TaskType": "TT_Mile", "DurationHrs": 0, "Driving": "Y", "TargetStart": "2024-01-01"},
        {"TargetFinish": "2024-03-31"},
        {"Status": "TK_Complete"},
    ])
    variance = VarianceSummary(activity_count_difference=2, total_delay_days=7.0, critical_path_delay_days=3.0)
    summary = build_project_summary(snap, variance)

    assert summary["totalTasks"] == 3
    assert summary["startDate"] == "2024-01-01"
    assert summary["endDate"] == "2024-03-31"
    assert summary["criticalTasks"] == 1
    assert summary["milestones"] == 1
    assert summary["completedTasks"] == 1
    assert summary["taskTypes"] == [("TT_Mile", 1), ("TT_Task", 2)]

    prompt = build_narrative_prompt(summary)
    assert prompt == build_narrative_prompt(build_project_summary(snap, variance))
    assert "### Key Statistics" in prompt
    assert "- TT_Task: 2" in prompt
    assert "Total Delay (days, float-adjusted): 7.0" in prompt


def test_extract_known_chart_directive():
    text = "Here is the trend.\n```chart\nline,timeline\n```\nDone."
    directive, stripped = extract_chart_directive(text)

    assert directive == ChartDirective("line", "timeline")
    assert "```" not in stripped
    assert stripped.startswith("Here is the trend.")


@pytest.mark.parametrize("block", ["scatter,timeline", "bar,budget", "bar", ""])
def test_unknown_chart_directives_are_ignored(block):
    text = f"Text\n```chart\n{block}\n```"
    directive, stripped = extract_chart_directive(text)

    assert directive is None
    assert stripped == text


def test_reply_without_directive():
    assert extract_chart_directive("plain markdown") == (None, "plain markdown")
