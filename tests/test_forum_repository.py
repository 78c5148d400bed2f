from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from forum_api.core.settings import AppSettings
from forum_api.db.base import utcnow
from forum_api.db.models import TOPIC_ANNOUNCE, TOPIC_STICKY, Forum, Post, Topic
from forum_api.repositories.base import PaginatedResult
from forum_api.repositories.forum import ForumRepository


@pytest.mark.asyncio
async def test_add_assigns_increasing_display_order(session):
    repo = ForumRepository(session)

    first, second, third = Forum(name="a"), Forum(name="b"), Forum(name="c")
    for forum in (first, second, third):
        await repo.add(forum)

    assert [first.display_order, second.display_order, third.display_order] == [1, 2, 3]
    assert first.id is not None


@pytest.mark.asyncio
async def test_add_continues_after_highest_display_order(session, make_forum):
    await make_forum("existing", display_order=5)
    repo = ForumRepository(session)

    forum = Forum(name="new")
    await repo.add(forum)

    assert forum.display_order == 6


@pytest.mark.asyncio
async def test_find_all_returns_every_forum_in_display_order(session):
    repo = ForumRepository(session)
    assert await repo.find_all() == []

    names = ["news", "help", "off-topic"]
    for name in names:
        await repo.add(Forum(name=name))

    forums = await repo.find_all()
    assert [f.name for f in forums] == names


@pytest.mark.asyncio
async def test_generic_get_update_remove_and_count(session, make_forum):
    repo = ForumRepository(session)
    forum = await make_forum("temp")

    assert await repo.get(forum.id) is forum
    assert await repo.count() == 1

    forum.description = "changed"
    merged = await repo.update(forum)
    assert merged.description == "changed"

    await repo.remove(merged)
    assert await repo.count() == 0
    assert await repo.get_many([forum.id]) == []


@pytest.mark.asyncio
async def test_move_topics_reassigns_posts_and_records_origin(session, make_forum, make_topic):
    source = await make_forum("source")
    other = await make_forum("other")
    target = await make_forum("target")
    t1 = await make_topic(source, "one", posts=3)
    t2 = await make_topic(other, "two", posts=2)
    untouched = await make_topic(source, "stay", posts=1)

    repo = ForumRepository(session)
    await repo.move_topics(target, t1.id, t2.id)

    rows = (await session.execute(select(Topic.id, Topic.forum_id, Topic.moved_id).order_by(Topic.id))).all()
    assert {r.id: (r.forum_id, r.moved_id) for r in rows} == {
        t1.id: (target.id, source.id),
        t2.id: (target.id, other.id),
        untouched.id: (source.id, 0),
    }

    moved_post_forums = (
        await session.execute(select(Post.forum_id).where(Post.topic_id.in_([t1.id, t2.id])))
    ).scalars().all()
    assert len(moved_post_forums) == 5
    assert set(moved_post_forums) == {target.id}

    stay_post_forums = (
        await session.execute(select(Post.forum_id).where(Post.topic_id == untouched.id))
    ).scalars().all()
    assert stay_post_forums == [source.id]


@pytest.mark.asyncio
async def test_move_topics_refreshes_topics_loaded_in_session(session, make_forum, make_topic):
    source = await make_forum("source")
    target = await make_forum("target")
    topic = await make_topic(source, "moving", posts=2)

    repo = ForumRepository(session)
    assert [t.id for t in await repo.get_topics(source, 0, 15)] == [topic.id]

    await repo.move_topics(target, topic.id)

    assert (topic.forum_id, topic.moved_id) == (target.id, source.id)
    listed = await repo.get_topics(target, 0, 15)
    assert listed == [topic]
    assert listed[0].moved_id == source.id


@pytest.mark.asyncio
async def test_move_topics_without_ids_is_noop(session, make_forum, make_topic):
    forum = await make_forum("a")
    target = await make_forum("b")
    topic = await make_topic(forum)

    await ForumRepository(session).move_topics(target)

    row = (await session.execute(select(Topic.forum_id, Topic.moved_id).where(Topic.id == topic.id))).one()
    assert tuple(row) == (forum.id, 0)


@pytest.mark.asyncio
async def test_get_moderators_returns_distinct_moderating_groups(session, make_forum, make_group):
    forum = await make_forum("a")
    elsewhere = await make_forum("b")
    mods = await make_group("mods", moderates=[forum.id, elsewhere.id])
    await make_group("other-mods", moderates=[elsewhere.id])
    await make_group("not-a-mod-role", moderates=[forum.id], role_name="edit_forum")
    second = await make_group("more-mods", moderates=[forum.id])

    groups = await ForumRepository(session).get_moderators(forum)

    assert [g.id for g in groups] == [mods.id, second.id]


@pytest.mark.asyncio
async def test_get_topics_pending_moderation(session, make_forum, make_topic):
    forum = await make_forum("a")
    other = await make_forum("b")
    with_held_posts = await make_topic(forum, "held", posts=3, moderate=[False, True, True])
    pending = await make_topic(forum, "pending", posts=2, pending=True)
    await make_topic(forum, "clean", posts=2)
    await make_topic(other, "held elsewhere", posts=1, moderate=[True])

    topics = await ForumRepository(session).get_topics_pending_moderation(forum)

    assert [t.id for t in topics] == [with_held_posts.id, pending.id]


@pytest.mark.asyncio
async def test_pending_moderation_replaces_loaded_posts(session, make_forum, make_topic):
    forum = await make_forum("a")
    topic = await make_topic(forum, "held", posts=3, moderate=[False, True, True])

    await session.execute(select(Topic).options(selectinload(Topic.posts)).where(Topic.id == topic.id))
    assert len(topic.posts) == 3

    topics = await ForumRepository(session).get_topics_pending_moderation(forum)

    assert topics == [topic]
    assert [p.moderate for p in topic.posts] == [True, True]


@pytest.mark.asyncio
async def test_get_last_post_skips_moderated_posts(session, make_forum, make_topic):
    forum = await make_forum("a")
    empty = await make_forum("empty")
    topic = await make_topic(forum, "t", posts=3, moderate=[False, False, True])

    post = await ForumRepository(session).get_last_post(forum)

    expected = (
        await session.execute(
            select(Post.id).where(Post.topic_id == topic.id, Post.moderate.is_(False)).order_by(Post.id.desc())
        )
    ).scalars().first()
    assert post is not None
    assert post.id == expected
    assert await ForumRepository(session).get_last_post(empty) is None


@pytest.mark.asyncio
async def test_totals(session, make_forum, make_topic):
    forum = await make_forum("a")
    other = await make_forum("b")
    target = await make_forum("c")
    await make_topic(forum, "one", posts=2)
    await make_topic(forum, "pending", posts=1, pending=True)
    moved = await make_topic(forum, "moved away", posts=1)
    await make_topic(other, "elsewhere", posts=4)

    repo = ForumRepository(session)
    await repo.move_topics(target, moved.id)
    await make_topic(forum, "three", posts=1)

    assert await repo.get_total_messages() == 9
    assert await repo.get_total_posts(forum) == 4
    assert await repo.get_total_topics(forum) == 2
    assert await repo.get_total_topics(other) == 1
    # moved topics carry a non-zero moved_id and are not counted anywhere
    assert await repo.get_total_topics(target) == 0


@pytest.mark.asyncio
async def test_get_topics_orders_filters_and_includes_moved(session, make_forum, make_topic):
    forum = await make_forum("a")
    target = await make_forum("b")
    normal = await make_topic(forum, "normal")
    await make_topic(forum, "pending", pending=True)
    await make_topic(forum, "no posts", posts=0)
    moved = await make_topic(forum, "moved")
    sticky = await make_topic(forum, "sticky", topic_type=TOPIC_STICKY)
    newest = await make_topic(forum, "newest")
    announce = await make_topic(forum, "announce", topic_type=TOPIC_ANNOUNCE)

    repo = ForumRepository(session)
    await repo.move_topics(target, moved.id)

    topics = await repo.get_topics(forum, 0, 10)
    assert [t.id for t in topics] == [announce.id, sticky.id, newest.id, moved.id, normal.id]

    page = await repo.get_topics(forum, 2, 2)
    assert [t.id for t in page] == [newest.id, moved.id]

    assert [t.id for t in await repo.get_topics(target, 0, 10)] == [moved.id]


@pytest.mark.asyncio
async def test_get_topics_leaves_out_moved_topics_when_configured(session, make_forum, make_topic):
    forum = await make_forum("a")
    target = await make_forum("b")
    kept = await make_topic(forum, "kept")
    moved = await make_topic(forum, "moved")

    repo = ForumRepository(session, settings=AppSettings(QUERY_IGNORE_TOPIC_MOVED=True))
    await repo.move_topics(target, moved.id)

    assert [t.id for t in await repo.get_topics(forum, 0, 10)] == [kept.id]
    assert [t.id for t in await repo.get_topics(target, 0, 10)] == [moved.id]


@pytest.mark.asyncio
async def test_get_new_messages_counts_and_pages(session, make_forum, make_topic):
    forum = await make_forum("a")
    now = utcnow()
    await make_topic(forum, "old", date=now - timedelta(days=10))
    yesterday = await make_topic(forum, "yesterday", date=now - timedelta(days=1))
    latest = await make_topic(forum, "latest", date=now)
    await make_topic(forum, "pending", date=now, pending=True)

    repo = ForumRepository(session)
    since = now - timedelta(days=2)

    first = await repo.get_new_messages(since, 0, 1)
    assert isinstance(first, PaginatedResult)
    assert first.total == 2
    assert [t.id for t in first.results] == [latest.id]

    second = await repo.get_new_messages(since, 1, 1)
    assert second.total == 2
    assert [t.id for t in second.results] == [yesterday.id]

    none = await repo.get_new_messages(now + timedelta(days=1), 0, 10)
    assert none.total == 0
    assert none.results == []
    assert none.model_dump() == PaginatedResult().model_dump()


@pytest.mark.asyncio
async def test_forum_stats_divides_by_at_least_one_day(session, make_forum, make_topic, make_user):
    forum = await make_forum("a")
    await make_topic(forum, "one", posts=2)
    await make_topic(forum, "two", posts=1)
    now = utcnow()
    await make_user("alice", registered=now - timedelta(days=10))
    await make_user("bob", registered=now)

    stats = await ForumRepository(session).get_forum_stats()

    assert stats.posts == 3
    assert stats.total_topics == 2
    assert stats.total_users == 2
    assert stats.posts_per_day == pytest.approx(3.0)
    assert stats.topics_per_day == pytest.approx(2.0)
    assert stats.users_per_day == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_forum_stats_on_empty_board(session):
    stats = await ForumRepository(session).get_forum_stats()

    assert stats.posts == 0
    assert stats.total_users == 0
    assert stats.posts_per_day == 0
    assert stats.topics_per_day == 0
    assert stats.users_per_day == 0


@pytest.mark.asyncio
async def test_forum_stats_for_groups_counts_distinct_members(session, make_group, make_user):
    admins = await make_group("admins")
    members = await make_group("members")
    guests = await make_group("guests")
    await make_user("alice", groups=[admins])
    await make_user("bob", groups=[admins, members])
    await make_user("carol", groups=[guests])

    repo = ForumRepository(session)

    stats = await repo.get_forum_stats([admins, members])
    assert stats.total_users == 2
    assert stats.posts == 0
    assert stats.posts_per_day == 0

    assert (await repo.get_forum_stats([guests])).total_users == 1
    assert (await repo.get_forum_stats([])).total_users == 0
