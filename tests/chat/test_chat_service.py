import pytest

from application.ports.realtime import DirectMessageEvent
from application.services.chat_service import DirectMessageService
from domain.chat.entity import Conversation
from domain.common.exceptions import (
    ConversationAccessDeniedException,
    ConversationNotFoundException,
    DomainValidationException,
    SelfConversationException,
)
from infrastructure.realtime.notification_registry import NotificationRegistry
from infrastructure.repositories.chat_repository import InMemoryConversationRepository


def _service():
    registry = NotificationRegistry()
    conversations = InMemoryConversationRepository()
    return DirectMessageService(conversations=conversations, publisher=registry), registry, conversations


@pytest.mark.asyncio
async def test_post_message_notifies_the_other_participant():
    service, registry, conversations = _service()
    await conversations.save(Conversation(id="c1", user_a_id="u1", user_b_id="u2"))
    to_u2, to_u1 = [], []
    registry.register("u2", to_u2.append)
    registry.register("u1", to_u1.append)

    message = await service.post_message("c1", "u1", "Ann", "  hello there  ")

    assert message.body == "hello there"
    assert to_u1 == []
    assert len(to_u2) == 1
    event = to_u2[0]
    assert isinstance(event, DirectMessageEvent)
    assert event.conversation_id == "c1"
    assert event.message_id == message.id
    assert event.sender.name == "Ann"
    assert event.created_at == message.created_at


@pytest.mark.asyncio
async def test_post_message_without_listener_still_persists():
    service, _, conversations = _service()
    await conversations.save(Conversation(id="c1", user_a_id="u1", user_b_id="u2"))

    await service.post_message("c1", "u1", "Ann", "anyone there?")

    messages = await service.list_messages("c1", "u2")
    assert [m.body for m in messages] == ["anyone there?"]


@pytest.mark.asyncio
async def test_post_message_touches_conversation():
    service, _, conversations = _service()
    conversation = Conversation(id="c1", user_a_id="u1", user_b_id="u2")
    await conversations.save(conversation)
    before = conversation.updated_at

    message = await service.post_message("c1", "u2", "Bo", "hi")

    stored = await conversations.get("c1")
    assert stored.updated_at == message.created_at
    assert stored.updated_at >= before


@pytest.mark.asyncio
async def test_unknown_conversation_and_outsider_are_rejected():
    service, _, conversations = _service()
    await conversations.save(Conversation(id="c1", user_a_id="u1", user_b_id="u2"))

    with pytest.raises(ConversationNotFoundException):
        await service.post_message("missing", "u1", "Ann", "hi")
    with pytest.raises(ConversationAccessDeniedException):
        await service.post_message("c1", "u3", "Cy", "hi")
    with pytest.raises(ConversationAccessDeniedException):
        await service.list_messages("c1", "u3")


@pytest.mark.asyncio
async def test_empty_or_oversized_body_is_rejected():
    service, _, conversations = _service()
    await conversations.save(Conversation(id="c1", user_a_id="u1", user_b_id="u2"))

    with pytest.raises(DomainValidationException):
        await service.post_message("c1", "u1", "Ann", "   ")
    with pytest.raises(DomainValidationException):
        await service.post_message("c1", "u1", "Ann", "x" * 2001)


@pytest.mark.asyncio
async def test_open_conversation_is_find_or_create():
    service, _, _ = _service()

    first = await service.open_conversation("u2", "u1")
    again = await service.open_conversation("u1", "u2")

    assert first.id == again.id
    assert (first.user_a_id, first.user_b_id) == ("u1", "u2")
    assert [c.id for c in await service.list_conversations("u1")] == [first.id]
    assert await service.list_conversations("u3") == []


@pytest.mark.asyncio
async def test_open_conversation_with_self_is_rejected():
    service, _, _ = _service()
    with pytest.raises(SelfConversationException):
        await service.open_conversation("u1", "u1")


@pytest.mark.asyncio
async def test_conversations_are_listed_most_recent_first():
    service, _, _ = _service()
    older = await service.open_conversation("u1", "u2")
    newer = await service.open_conversation("u1", "u3")

    await service.post_message(older.id, "u1", "Ann", "bump")

    assert [c.id for c in await service.list_conversations("u1")] == [older.id, newer.id]
