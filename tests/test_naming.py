import pytest

from dbm_agent.naming import camel_case, model_filename, model_name_from_table, split_words


@pytest.mark.parametrize(
    "column,key",
    [
        ("id", "id"),
        ("created_at", "createdAt"),
        ("USER_ID", "userId"),
        ("userID", "userId"),
        ("updatedAt", "updatedAt"),
        ("col2", "col2"),
        ("", ""),
    ],
)
def test_camel_case(column, key):
    assert camel_case(column) == key


def test_split_words_handles_acronyms():
    assert split_words("XMLHttpRequest") == ["XML", "Http", "Request"]


def test_model_name_from_table():
    assert model_name_from_table("user_info") == "UserInfo"
    assert model_name_from_table("USER_LOGIN_LOG") == "UserLoginLog"


def test_model_filename():
    assert model_filename("User") == "User.js"
    assert model_filename("User.js") == "User.js"
