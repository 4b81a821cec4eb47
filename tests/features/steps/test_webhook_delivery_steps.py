"""Behavioural coverage for GitHub webhook delivery over HTTP."""

from __future__ import annotations

import asyncio
import typing as typ

import falcon.testing
import pytest
from pytest_bdd import given, parsers, scenario, then, when
from sqlalchemy import func, select

from gitviz.activity import Commit, GitRef, PullRequest, RefType
from gitviz.api.app import AppDependencies, create_app
from gitviz.events import WebhookEvent
from tests.helpers.github_webhooks import (
    encode_payload,
    load_github_fixture,
    pull_request_payload,
    webhook_headers,
)

if typ.TYPE_CHECKING:
    from falcon.testing.client import Result
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from gitviz.webhooks import WebhookConfig

FEATURE = "../webhook_delivery.feature"
ModelT = typ.TypeVar("ModelT")


class DeliveryContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    session_factory: async_sessionmaker[AsyncSession]
    client: falcon.testing.TestClient
    body: bytes
    event: str
    responses: list[Result]


@scenario(FEATURE, "Deliveries without a valid signature are forbidden")
def test_unsigned_deliveries_are_forbidden() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "Unknown event types are not implemented")
def test_unknown_event_types_are_not_implemented() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "A tag creation is recorded")
def test_tag_creation_is_recorded() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "Pushes record commits and file changes")
def test_pushes_record_commits() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "Redelivering an event updates the stored record")
def test_redelivery_updates_stored_record() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "Pull request actions update one snapshot")
def test_pull_request_actions() -> None:
    """Wrap the pytest-bdd scenario."""


@scenario(FEATURE, "Other supported events are accepted")
def test_other_supported_events() -> None:
    """Wrap the pytest-bdd scenario."""


@pytest.fixture
def delivery_context(
    session_factory: async_sessionmaker[AsyncSession],
) -> DeliveryContext:
    """Provision a fresh database for the scenario."""
    return {"session_factory": session_factory, "responses": []}


def _count(context: DeliveryContext, model: type[object]) -> int:
    session_factory = context["session_factory"]

    async def _run() -> int:
        async with session_factory() as session:
            return await session.scalar(select(func.count()).select_from(model)) or 0

    return asyncio.run(_run())


def _one(context: DeliveryContext, statement: typ.Any) -> typ.Any:  # noqa: ANN401
    session_factory = context["session_factory"]

    async def _run() -> typ.Any:  # noqa: ANN401
        async with session_factory() as session:
            return (await session.scalars(statement)).one()

    return asyncio.run(_run())


def _post(
    context: DeliveryContext,
    body: bytes,
    headers: dict[str, str],
) -> None:
    context["body"] = body
    context["responses"].append(
        context["client"].simulate_post("/event", body=body, headers=headers)
    )


@given("a Gitviz app configured with the webhook secret")
def given_configured_app(
    delivery_context: DeliveryContext, webhook_config: WebhookConfig
) -> None:
    """Build the app against the scenario database."""
    deps = AppDependencies(
        session_factory=delivery_context["session_factory"],
        webhook_config=webhook_config,
    )
    delivery_context["client"] = falcon.testing.TestClient(create_app(deps))


@when(parsers.parse('a "{event}" delivery is sent with {signature}'))
def when_delivery_with_signature(
    delivery_context: DeliveryContext, event: str, signature: str
) -> None:
    """Send a delivery with a missing, empty or foreign signature."""
    body = encode_payload(load_github_fixture(event))
    match signature:
        case "no signature":
            headers = webhook_headers(body, event=event, signature=None)
        case "an empty signature":
            headers = webhook_headers(body, event=event, signature="")
        case "the wrong secret":
            headers = webhook_headers(body, event=event, secret="wrong-secret")
        case _:
            pytest.fail(f"unknown signature variant {signature!r}")
    _post(delivery_context, body, headers)


@when(parsers.parse('a signed "{event}" delivery of the "{fixture}" payload is sent'))
def when_signed_delivery(
    delivery_context: DeliveryContext, event: str, fixture: str
) -> None:
    """Send a correctly signed delivery of a payload fixture."""
    body = encode_payload(load_github_fixture(fixture))
    delivery_context["event"] = event
    _post(delivery_context, body, webhook_headers(body, event=event))


@when(parsers.parse('a signed pull request "{action}" delivery is sent'))
def when_pull_request_delivery(delivery_context: DeliveryContext, action: str) -> None:
    """Send a signed pull_request delivery for ``action``."""
    body = encode_payload(pull_request_payload(action))
    _post(delivery_context, body, webhook_headers(body, event="pull_request"))


@when("the same delivery is sent again")
def when_redelivered(delivery_context: DeliveryContext) -> None:
    """Resend the previous body under a new delivery id."""
    body = delivery_context["body"]
    _post(
        delivery_context,
        body,
        webhook_headers(body, event=delivery_context["event"]),
    )


@then(parsers.parse("the response status is {status:d}"))
def then_response_status(delivery_context: DeliveryContext, status: int) -> None:
    """Assert the status of the latest response."""
    response = delivery_context["responses"][-1]
    assert response.status_code == status, (
        f"expected status {status}, got {response.status_code}: {response.text}"
    )


@then(parsers.parse("both responses have status {status:d}"))
def then_both_statuses(delivery_context: DeliveryContext, status: int) -> None:
    """Assert every response shares ``status``."""
    codes = [r.status_code for r in delivery_context["responses"]]
    assert codes == [status, status], f"unexpected statuses {codes}"


@then("no webhook events are stored")
def then_no_events(delivery_context: DeliveryContext) -> None:
    """Rejected deliveries leave no rows behind."""
    assert _count(delivery_context, WebhookEvent) == 0


@then(parsers.parse("{count:d} webhook event is stored"))
def then_event_count(delivery_context: DeliveryContext, count: int) -> None:
    """Assert the number of stored events."""
    assert _count(delivery_context, WebhookEvent) == count


@then(parsers.parse("{count:d} commit is stored"))
def then_commit_count(delivery_context: DeliveryContext, count: int) -> None:
    """Assert the number of stored commits."""
    assert _count(delivery_context, Commit) == count


@then(parsers.parse("the stored event has been delivered {count:d} times"))
def then_delivery_count(delivery_context: DeliveryContext, count: int) -> None:
    """Assert the redelivery counter of the single stored event."""
    event = _one(delivery_context, select(WebhookEvent))
    assert event.delivery_count == count


@then(parsers.parse('the tag "{name}" is tracked'))
def then_tag_tracked(delivery_context: DeliveryContext, name: str) -> None:
    """Assert a live tag row exists."""
    tag = _one(
        delivery_context,
        select(GitRef).where(GitRef.ref_type == RefType.TAG.value, GitRef.name == name),
    )
    assert tag.is_deleted is False


@then(parsers.parse('the branch "{name}" points at "{sha}"'))
def then_branch_head(delivery_context: DeliveryContext, name: str, sha: str) -> None:
    """Assert the branch head recorded from the push."""
    branch = _one(
        delivery_context,
        select(GitRef).where(
            GitRef.ref_type == RefType.BRANCH.value, GitRef.name == name
        ),
    )
    assert branch.head_sha == sha


@then(parsers.parse("the pull request's last action is \"{action}\""))
def then_pull_request_action(delivery_context: DeliveryContext, action: str) -> None:
    """Assert the snapshot reflects the latest action."""
    pr = _one(delivery_context, select(PullRequest))
    assert pr.last_action == action
