import sys
from pathlib import Path

# Ensure the repository root (parent directory of this file) is on the import path.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from app.main import app
from app.core.dependencies import get_current_user_id
from app.storage import DemoAwareStorage, MemoryStorage, get_storage
from app.modules.users.schemas import UserUpsert
from app.modules.family_members.schemas import FamilyMemberCreate

OWNER_ID = "user-owner"


class CurrentUser:
    """Who the test client is logged in as; None means anonymous"""
    user_id = None


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def storage():
    return DemoAwareStorage(MemoryStorage(), MemoryStorage())


@pytest.fixture
def current_user():
    return CurrentUser()


@pytest.fixture
def client(storage, current_user):
    def override_current_user_id():
        if current_user.user_id is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return current_user.user_id

    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_current_user_id] = override_current_user_id
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def session_client(storage):
    """Client that goes through the real session cookie"""
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def family(storage, current_user):
    """An owner with an auto-provisioned family and one calendar participant, logged in"""
    storage.upsert_user(UserUpsert(id=OWNER_ID, email="ana@example.com", first_name="Ana"))
    family = storage.get_user_families(OWNER_ID)[0]
    member = storage.create_family_member(family.id, FamilyMemberCreate(name="Ana", color="#112233"))
    current_user.user_id = OWNER_ID
    return {"family": family, "member": member}


def add_user(storage, family_id, user_id, role, email=None):
    storage.upsert_user(UserUpsert(id=user_id, email=email, first_name=user_id), ensure_family=False)
    storage.add_family_membership(family_id, user_id, role)
    return user_id
