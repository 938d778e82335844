"""
Shared fixtures: a store seeded with one user of every role, a shop,
transactions, logs and the service document.
"""

from __future__ import annotations

import copy

import pytest

from shopguard.store import MemoryStore

SHOP_NAME = "Nights third leg syndrom"

SEED = {
    "users": {
        "defaultUser1": {
            "birth": 631152000000,
            "joined": 1622505600000,
            "name": "Dragon Uldrid",
            "value": 10,
        },
        "adminUser1": {
            "birth": 631152000000,
            "joined": 1622505600000,
            "name": "Armin Unveil",
            "value": 0,
            "isAdmin": True,
        },
        "employeeUser1": {
            "birth": 788918400000,
            "joined": 1633027200000,
            "name": "Ester Undertake",
            "value": 0,
            "shopId": "shop1",
            "shopName": SHOP_NAME,
            "isEmployee": True,
        },
        "shopOwnerUser1": {
            "birth": 946684800000,
            "joined": 1640995200000,
            "name": "Sylphie Olerson Unravel",
            "value": 750,
            "shopId": "shop1",
            "shopName": SHOP_NAME,
            "isShopOwner": True,
            "isEmployee": True,
        },
    },
    "shops": {
        "shop1": {
            "ownerId": "shopOwnerUser1",
            "joined": 1640995200000,
            "employeeIds": ["shopOwnerUser1", "employeeUser1"],
            "name": SHOP_NAME,
            "key": "nights-third-leg-syndrom",
        },
    },
    "transactions": {
        "transaction1": {
            "shopId": "shop1",
            "shopName": SHOP_NAME,
            "timestamp": 1625011200000,
            "employeeId": "employeeUser1",
            "userId": "defaultUser1",
            "valueIncrement": 10,
            "oldAccountValue": 0,
            "newAccountValue": 10,
        },
        "transaction2": {
            "shopId": "unknown shop",
            "shopName": "Mirandas world",
            "timestamp": 1625011200000,
            "employeeId": "some employee",
            "userId": "some user",
            "valueIncrement": 10,
            "oldAccountValue": 0,
            "newAccountValue": 10,
        },
        "transaction3": {
            "shopId": "shop1",
            "shopName": SHOP_NAME,
            "timestamp": 1625011200000,
            "employeeId": "different employee",
            "userId": "defaultUser1",
            "valueIncrement": 10,
            "oldAccountValue": 10,
            "newAccountValue": 20,
        },
    },
    "logs": {
        "log1": {
            "action": "add-shop",
            "timestamp": 1640995200000,
            "shopName": SHOP_NAME,
            "shopId": "shop1",
            "adminId": "adminUser1",
            "shopOwnerId": "shopOwnerUser1",
        },
        "log2": {
            "action": "add-employee",
            "timestamp": 1640995200000,
            "shopId": "shop1",
            "shopOwnerId": "shopOwnerUser1",
            "employeeId": "employeeUser1",
            "newEmployeeIds": ["shopOwnerUser1", "employeeUser1"],
        },
    },
    "service": {
        "admins": {"adminUserIds": ["adminUser1"]},
    },
}

# Values of each semantic type, plus injection strings no stored text
# field may ever hold.
TYPE_VECTORS = {
    "evil": [
        "<script>alert('Hihihi')</script>",
        "<img src=x onerror=alert(1)>",
        "<svg onload=alert(1)>",
        "<a href=\"javascript:alert('XSS')\">Click me</a>",
        "\"><script>alert(1)</script>",
        "<body onload=alert('XSS')>",
        "\"><img src=\"javascript:alert('XSS');\">",
        "\"><iframe src=\"javascript:alert('XSS');\"></iframe>",
        "\"><style>body{background:url(\"javascript:alert('XSS')\")}</style>",
        "<meta http-equiv=\"refresh\" content=\"0;url=javascript:alert('XSS');\">",
        "<input type=\"text\" value=\"XSS\" onfocus=\"alert(1)\">",
        "\"><script>document.write('<img src=x onerror=alert(1)>');</script>",
        "\"><object data=\"javascript:alert(1)\"></object>",
        "`; DROP TABLE users; --",
        "\" OR \"1\"=\"1\"",
        "UNION SELECT username, password FROM users;",
        "\"><marquee onstart=alert(1)>",
        "\"><video src=x onerror=alert(1)>",
        "javascript:alert(1)",
        "data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
    ],
    "string": ["string123", "Hörg Hämsel"],
    "float": [123.01, 0.989],
    "boolean": [True, False],
    "integer": [1, 0, 631152000000],
    "null": [None],
}


@pytest.fixture
def db() -> MemoryStore:
    return MemoryStore(copy.deepcopy(SEED))


@pytest.fixture
def anonymous(db):
    return db.session(None)


@pytest.fixture
def default_user(db):
    return db.session("defaultUser1")


@pytest.fixture
def no_profile_user(db):
    return db.session("defaultUser2")


@pytest.fixture
def admin(db):
    return db.session("adminUser1")


@pytest.fixture
def employee(db):
    return db.session("employeeUser1")


@pytest.fixture
def shop_owner(db):
    return db.session("shopOwnerUser1")
