"""
End-to-end tests for ResourceCollection over SQLite.

Mirrors the Flintstones scenarios: constraint scoping on every operation,
sparse fieldsets, sorting, filtering and relationship includes.
"""

from __future__ import annotations

import json
import re

import pytest

from cqrs_ddd_resources import (
    CollectionConfig,
    ConstraintViolationError,
    InvalidFilterError,
    InvalidPayloadError,
    RelationshipDescriptor,
    ResourceCollection,
    ResourceQueryOptions,
)
from cqrs_ddd_resources.persistence import SQLAlchemyJoin, SQLAlchemyResourceStore
from tests.models import GroupModel, PostModel, UserModel

SELF_LINK = re.compile(r"^/users/[0-9]+$")


def opts(**params) -> ResourceQueryOptions:
    return ResourceQueryOptions.from_params(params)


@pytest.fixture
def users(user_store) -> ResourceCollection:
    return ResourceCollection(user_store)


@pytest.fixture
async def flintstones(seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com", group_id=1)
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com", group_id=2)
    await seed(fred, wilma)
    return fred, wilma


@pytest.fixture
def posts(post_store) -> ResourceCollection:
    return ResourceCollection(
        post_store,
        CollectionConfig(
            relationships={
                "author": RelationshipDescriptor(
                    join=SQLAlchemyJoin(PostModel.author),
                    link="/users/<%=author_id%>",
                )
            }
        ),
    )


# -- list ---------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list(users, flintstones):
    result = await users.list("/users", opts())

    assert [e.attributes["name"] for e in result.elements] == [
        "Fred Flintstone",
        "Wilma Flintstone",
    ]
    assert all(SELF_LINK.match(e.links["$self"]) for e in result.elements)
    assert result.links["$self"] == "/users"
    assert result.meta == {
        "count": 2,
        "page": {"number": 1, "size": 20, "count": 1},
    }


@pytest.mark.asyncio
async def test_list_constraint(users, flintstones):
    result = await users.list("/users", opts(), {"group_id": 1})

    assert len(result.elements) == 1
    assert result.elements[0].attributes["name"] == "Fred Flintstone"
    assert SELF_LINK.match(result.elements[0].links["$self"])
    assert result.meta["count"] == 1


@pytest.mark.asyncio
async def test_list_fields(users, flintstones):
    result = await users.list("/users", opts(fields={"$self": "email"}))

    assert len(result.elements) == 2
    for element in result.elements:
        assert "name" not in element.attributes
        assert set(element.attributes) == {"id", "email"}
        assert SELF_LINK.match(element.links["$self"])


@pytest.mark.asyncio
async def test_list_sort(users, flintstones):
    result = await users.list("/users", opts(sort="-name"))

    assert [e.attributes["name"] for e in result.elements] == [
        "Wilma Flintstone",
        "Fred Flintstone",
    ]


@pytest.mark.asyncio
async def test_list_filter(users, flintstones):
    result = await users.list("/users", opts(filter={"name": "Wilma Flintstone"}))

    assert len(result.elements) == 1
    assert result.elements[0].attributes["name"] == "Wilma Flintstone"


@pytest.mark.asyncio
async def test_list_like_is_case_insensitive(users, flintstones):
    result = await users.list("/users", opts(filter={"name": {"$like": "WILMA%"}}))
    assert [e.attributes["name"] for e in result.elements] == ["Wilma Flintstone"]


@pytest.mark.asyncio
async def test_list_filter_constraint(users, seed):
    await seed(
        UserModel(name="Fred Flintstone", email="fred@gmail.com"),
        UserModel(name="Wilma Flintstone", email="wilma@gmail.com"),
    )
    result = await users.list(
        "/users", opts(filter={"name": {"$like": "wilma%"}}), {"group_id": 2}
    )

    assert result.elements == []
    assert result.meta["count"] == 0


@pytest.mark.asyncio
async def test_list_filter_cannot_escape_constraint(users, flintstones):
    result = await users.list(
        "/users",
        opts(filter={"$or": [{"group_id": 1}, {"group_id": 2}]}),
        {"group_id": 1},
    )
    assert [e.attributes["name"] for e in result.elements] == ["Fred Flintstone"]


@pytest.mark.asyncio
async def test_list_compound_filter_rejected(users, flintstones):
    with pytest.raises(InvalidFilterError, match="filter key id query is too complex"):
        await users.list("/users", opts(filter={"id": {"$gt": 0, "$lt": 5}}))


@pytest.mark.asyncio
async def test_list_pagination(users, seed):
    await seed(
        *(UserModel(name=f"User {i:02d}", email=f"u{i}@x.com") for i in range(5))
    )
    result = await users.list("/users", opts(page={"number": 2, "size": 2}, sort="name"))

    assert [e.attributes["name"] for e in result.elements] == ["User 02", "User 03"]
    assert result.meta == {"count": 5, "page": {"number": 2, "size": 2, "count": 3}}
    assert result.links["$first"] == "/users?page[number]=1&page[size]=2&sort=name"
    assert result.links["$previous"] == "/users?page[number]=1&page[size]=2&sort=name"
    assert result.links["$next"] == "/users?page[number]=3&page[size]=2&sort=name"
    assert result.links["$last"] == "/users?page[number]=3&page[size]=2&sort=name"


@pytest.mark.asyncio
async def test_list_empty_collection(users):
    result = await users.list("/users", opts())

    assert result.elements == []
    assert result.meta == {"count": 0, "page": {"number": 1, "size": 20, "count": 0}}
    assert result.links["$last"] == "/users?page[number]=1&page[size]=20"
    assert "$next" not in result.links
    assert "$previous" not in result.links


@pytest.mark.asyncio
async def test_list_include(posts, seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com")
    await seed(fred)
    await seed(PostModel(title="Hello, world", author_id=fred.id))

    result = await posts.list("/posts", opts(include="author"))

    assert len(result.elements) == 1
    assert "author" not in result.elements[0].attributes
    assert result.elements[0].links["author"] == f"/users/{fred.id}"
    assert len(result.includes) == 1
    assert result.includes[0].links["$self"] == f"/users/{fred.id}"
    assert result.includes[0].attributes["name"] == "Fred Flintstone"


@pytest.mark.asyncio
async def test_list_include_under_name_other_than_attribute(post_store, seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com")
    await seed(fred)
    await seed(PostModel(title="Hello, world", author_id=fred.id))
    posts = ResourceCollection(
        post_store,
        CollectionConfig(
            relationships={
                "writer": RelationshipDescriptor(
                    join=SQLAlchemyJoin(PostModel.author),
                    link="/users/<%=author_id%>",
                )
            }
        ),
    )

    result = await posts.list("/posts", opts(include="writer"))

    element = result.elements[0]
    assert "writer" not in element.attributes
    assert "author" not in element.attributes
    assert element.links["writer"] == f"/users/{fred.id}"
    assert len(result.includes) == 1
    assert result.includes[0].attributes["name"] == "Fred Flintstone"
    json.dumps(result.to_dict())


@pytest.mark.asyncio
async def test_list_include_unknown_name_is_ignored(posts, seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com")
    await seed(fred)
    await seed(PostModel(title="Hello, world", author_id=fred.id))

    result = await posts.list("/posts", opts(include="comments"))

    assert result.includes == []
    assert "comments" not in result.elements[0].links


@pytest.mark.asyncio
async def test_list_include_outer(user_store, seed):
    group = GroupModel(name="group 1")
    await seed(group)
    await seed(
        UserModel(name="Fred Flintstone", email="fred@gmail.com", group_id=group.id),
        UserModel(name="Wilma Flintstone", email="wilma@gmail.com"),
    )
    users = ResourceCollection(
        user_store,
        CollectionConfig(
            relationships={
                "group": RelationshipDescriptor(
                    join=SQLAlchemyJoin(UserModel.group),
                    link="/groups/<%=group_id%>",
                )
            }
        ),
    )

    result = await users.list("/users", opts(include="group"))

    assert len(result.elements) == 2
    by_email = {e.attributes["email"]: e for e in result.elements}
    fred = by_email["fred@gmail.com"]
    assert fred.links["group"] == f"/groups/{group.id}"
    fred_group = next(i for i in result.includes if i.links["$self"] == fred.links["group"])
    assert fred_group.attributes["name"] == "group 1"
    assert "group" not in by_email["wilma@gmail.com"].links


@pytest.mark.asyncio
async def test_list_include_to_many(user_store, seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com")
    await seed(fred)
    await seed(
        PostModel(title="Yabba", author_id=fred.id),
        PostModel(title="Dabba", author_id=fred.id),
    )
    users = ResourceCollection(
        user_store,
        CollectionConfig(
            relationships={
                "posts": RelationshipDescriptor(
                    join=SQLAlchemyJoin(UserModel.posts),
                    link="/users/<%=id%>/posts",
                    item_link="/posts/<%=id%>",
                )
            }
        ),
    )

    result = await users.get("/users", fred.id, opts(include="posts"))

    assert result is not None
    assert "posts" not in result.attributes
    assert result.links["posts"] == f"/users/{fred.id}/posts"
    assert [i.attributes["title"] for i in result.includes] == ["Yabba", "Dabba"]
    assert all(i.links["$self"].startswith("/posts/") for i in result.includes)


# -- get ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_get(users, flintstones):
    fred, _ = flintstones
    result = await users.get("/users", fred.id, opts())

    assert result is not None
    assert result.links["$self"] == f"/users/{fred.id}"
    assert result.attributes["id"] == fred.id
    assert result.attributes["name"] == "Fred Flintstone"
    assert result.attributes["email"] == "fred@gmail.com"


@pytest.mark.asyncio
async def test_get_without_options(users, flintstones):
    fred, _ = flintstones
    result = await users.get("/users", fred.id)
    assert result is not None
    assert result.attributes["name"] == "Fred Flintstone"


@pytest.mark.asyncio
async def test_get_constraint(users, flintstones):
    fred, _ = flintstones
    result = await users.get("/users", fred.id, opts(), {"group_id": 1})

    assert result is not None
    assert result.attributes["name"] == "Fred Flintstone"


@pytest.mark.asyncio
async def test_get_constraint_missing_looks_like_missing(users, flintstones):
    fred, _ = flintstones
    excluded = await users.get("/users", fred.id, opts(), {"group_id": 2})
    missing = await users.get("/users", 999, opts(), {"group_id": 2})

    assert excluded is None
    assert missing is None


@pytest.mark.asyncio
async def test_get_fields_always_include_id(users, flintstones):
    fred, _ = flintstones
    result = await users.get("/users", fred.id, opts(fields={"$self": "name"}))

    assert result is not None
    assert result.attributes == {"id": fred.id, "name": "Fred Flintstone"}


@pytest.mark.asyncio
async def test_get_include(posts, seed):
    fred = UserModel(name="Fred Flintstone", email="fred@gmail.com")
    await seed(fred)
    post = PostModel(title="Hello, world", author_id=fred.id)
    await seed(post)

    result = await posts.get("/posts", post.id, opts(include="author"))

    assert result is not None
    assert result.attributes["id"] == post.id
    assert result.attributes["title"] == "Hello, world"
    assert len(result.includes) == 1
    assert result.includes[0].links["$self"] == f"/users/{fred.id}"
    assert result.includes[0].attributes["name"] == "Fred Flintstone"


@pytest.mark.asyncio
async def test_get_missing(users):
    assert await users.get("/users", 5, opts()) is None


def test_item_template_follows_id_field():
    assert CollectionConfig().item_template == "/<%=id%>"
    assert CollectionConfig(id_field="email").item_template == "/<%=email%>"
    assert (
        CollectionConfig(id_field="email", item_template="/<%=id%>").item_template
        == "/<%=id%>"
    )


@pytest.mark.asyncio
async def test_get_by_other_id_field(user_store, flintstones):
    users = ResourceCollection(user_store, CollectionConfig(id_field="email"))

    result = await users.get("/users", "wilma@gmail.com", opts())

    assert result is not None
    assert result.links["$self"] == "/users/wilma@gmail.com"
    assert result.attributes["name"] == "Wilma Flintstone"

    page = await users.list("/users", opts(sort="email"))
    assert [e.links["$self"] for e in page.elements] == [
        "/users/fred@gmail.com",
        "/users/wilma@gmail.com",
    ]


# -- create -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create(users):
    result = await users.create(
        "/users",
        {"attributes": {"name": "Fred Flintstone", "email": "fred@gmail.com"}},
    )

    assert SELF_LINK.match(result.links["$self"])
    assert result.attributes["name"] == "Fred Flintstone"
    listed = await users.list("/users", opts())
    assert [e.attributes["name"] for e in listed.elements] == ["Fred Flintstone"]


@pytest.mark.asyncio
async def test_create_constraint_pass(users, fetch):
    result = await users.create(
        "/users",
        {
            "attributes": {
                "name": "Fred Flintstone",
                "email": "fred@gmail.com",
                "group_id": 2,
            }
        },
        {"group_id": 2},
    )

    stored = await fetch(UserModel, result.attributes["id"])
    assert stored.name == "Fred Flintstone"
    assert stored.group_id == 2


@pytest.mark.asyncio
async def test_create_constraint_fail(users):
    with pytest.raises(ConstraintViolationError):
        await users.create(
            "/users",
            {
                "attributes": {
                    "name": "Fred Flintstone",
                    "email": "fred@gmail.com",
                    "group_id": 1,
                }
            },
            {"group_id": 2},
        )

    listed = await users.list("/users", opts())
    assert listed.elements == []


@pytest.mark.asyncio
async def test_create_invalid_payload(users):
    with pytest.raises(InvalidPayloadError):
        await users.create("/users", {"name": "Fred Flintstone"})


# -- update -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update(users, seed, fetch):
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com")
    await seed(wilma)

    result = await users.update(
        "/users", wilma.id, {"attributes": {"name": "Wilma Rubble"}}
    )

    assert result is not None
    assert result.attributes["name"] == "Wilma Rubble"
    assert result.links["$self"] == f"/users/{wilma.id}"
    updated = await fetch(UserModel, wilma.id)
    assert updated.name == "Wilma Rubble"
    assert updated.email == "wilma@gmail.com"


@pytest.mark.asyncio
async def test_update_without_returning_refetches(session_factory, seed):
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com")
    await seed(wilma)
    users = ResourceCollection(
        SQLAlchemyResourceStore(UserModel, session_factory, use_returning=False)
    )

    result = await users.update(
        "/users", wilma.id, {"attributes": {"name": "Wilma Rubble"}}
    )

    assert result is not None
    assert result.attributes["name"] == "Wilma Rubble"
    assert result.attributes["email"] == "wilma@gmail.com"


@pytest.mark.asyncio
async def test_update_constraint_pass(users, seed, fetch):
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com", group_id=1)
    await seed(wilma)

    result = await users.update(
        "/users",
        wilma.id,
        {"attributes": {"name": "Wilma Rubble", "group_id": 1}},
        {"group_id": 1},
    )

    assert result is not None
    updated = await fetch(UserModel, wilma.id)
    assert updated.name == "Wilma Rubble"
    assert updated.email == "wilma@gmail.com"


@pytest.mark.asyncio
async def test_update_constraint_missing(users, seed, fetch):
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com", group_id=1)
    await seed(wilma)

    result = await users.update(
        "/users",
        wilma.id,
        {"attributes": {"name": "Wilma Rubble", "group_id": 2}},
        {"group_id": 2},
    )

    assert result is None
    assert (await fetch(UserModel, wilma.id)).name == "Wilma Flintstone"


@pytest.mark.asyncio
async def test_update_constraint_violation_leaves_row_untouched(users, seed, fetch):
    wilma = UserModel(name="Wilma Flintstone", email="wilma@gmail.com", group_id=1)
    await seed(wilma)

    with pytest.raises(ConstraintViolationError):
        await users.update(
            "/users",
            wilma.id,
            {"attributes": {"name": "Wilma Rubble", "group_id": 2}},
            {"group_id": 1},
        )

    unchanged = await fetch(UserModel, wilma.id)
    assert (unchanged.name, unchanged.email, unchanged.group_id) == (
        "Wilma Flintstone",
        "wilma@gmail.com",
        1,
    )


@pytest.mark.asyncio
async def test_update_missing(users):
    result = await users.update("/users", 1, {"attributes": {"name": "Wilma Rubble"}})
    assert result is None


# -- delete -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete(users, flintstones, fetch):
    _, wilma = flintstones
    assert await users.delete(wilma.id) == 1
    assert await fetch(UserModel, wilma.id) is None


@pytest.mark.asyncio
async def test_delete_constraint(users, flintstones, fetch):
    fred, _ = flintstones
    assert await users.delete(fred.id, {"group_id": 1}) == 1
    assert await fetch(UserModel, fred.id) is None


@pytest.mark.asyncio
async def test_delete_constraint_missing(users, flintstones, fetch):
    fred, _ = flintstones
    assert await users.delete(fred.id, {"group_id": 2}) == 0
    assert await fetch(UserModel, fred.id) is not None


@pytest.mark.asyncio
async def test_delete_missing(users):
    assert await users.delete(42) == 0
