import pytest

from backend.database import Task, User
from backend.errors import ConflictError
from backend.stores import CredentialStore, TaskStore


@pytest.fixture()
def users(db_session):
    return CredentialStore(db_session)


@pytest.fixture()
def tasks(db_session):
    return TaskStore(db_session)


@pytest.fixture()
def owner(users):
    return users.create_user("owner", "hash")


@pytest.fixture()
def stranger(users):
    return users.create_user("stranger", "hash")


def test_create_and_find_user(users):
    created = users.create_user("alice", "somehash")
    assert created.id
    found = users.find_by_username("alice")
    assert found.id == created.id
    assert found.password_hash == "somehash"
    assert users.find_by_username("nobody") is None


def test_duplicate_username_is_conflict(users, db_session):
    users.create_user("alice", "h1")
    with pytest.raises(ConflictError) as exc:
        users.create_user("alice", "h2")
    assert exc.value.message == "User already exists"
    # сессия остаётся рабочей после отката
    assert db_session.query(User).filter(User.username == "alice").count() == 1


def test_create_task_defaults(tasks, owner):
    task = tasks.create(owner.id, "read")
    assert task.id
    assert task.status == "pending"
    assert task.priority == "medium"
    assert task.owner_id == owner.id


def test_create_task_empty_strings_fall_back_to_defaults(tasks, owner):
    task = tasks.create(owner.id, "read", status="", priority="")
    assert (task.status, task.priority) == ("pending", "medium")


def test_list_by_owner_is_scoped(tasks, owner, stranger):
    first = tasks.create(owner.id, "one")
    second = tasks.create(owner.id, "two", status="done")
    tasks.create(stranger.id, "not mine")

    listed = tasks.list_by_owner(owner.id)
    assert [t.id for t in listed] == [first.id, second.id]


def test_get_owned(tasks, owner, stranger):
    task = tasks.create(owner.id, "mine")
    assert tasks.get_owned(task.id, owner.id).id == task.id
    assert tasks.get_owned(task.id, stranger.id) is None
    assert tasks.get_owned("missing", owner.id) is None


def test_delete_one_owned(tasks, owner, stranger, db_session):
    task = tasks.create(owner.id, "mine")

    assert tasks.delete_one_owned(task.id, stranger.id) is None
    deleted = tasks.delete_one_owned(task.id, owner.id)
    assert deleted.text == "mine"
    assert db_session.query(Task).count() == 0
    assert tasks.delete_one_owned(task.id, owner.id) is None


def test_update_field_owned(tasks, owner, stranger):
    task = tasks.create(owner.id, "mine")

    updated = tasks.update_field_owned(task.id, owner.id, "status", "done")
    assert updated.status == "done"
    assert updated.priority == "medium"

    updated = tasks.update_field_owned(task.id, owner.id, "priority", "high")
    assert (updated.status, updated.priority) == ("done", "high")

    assert tasks.update_field_owned(task.id, stranger.id, "status", "hacked") is None
    assert tasks.get_owned(task.id, owner.id).status == "done"


def test_update_field_rejects_other_fields(tasks, owner):
    task = tasks.create(owner.id, "mine")
    with pytest.raises(ValueError):
        tasks.update_field_owned(task.id, owner.id, "text", "changed")


def test_user_password_not_in_repr(users):
    user = users.create_user("bob", "notplain")
    assert "notplain" not in repr(user)
