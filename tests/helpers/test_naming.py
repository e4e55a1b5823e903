"""Tests for laradoc/helpers/naming.py."""

from laradoc.helpers.naming import (
    capture_file_stem,
    operation_id,
    resource_name,
    schema_name_for_class,
    short_class_name,
    singular,
    split_words,
    summary_for,
    tag_from_uri,
    to_class_name,
    to_identifier,
)


class TestToIdentifier:
    def test_basic(self) -> None:
        assert to_identifier("get_users") == "get_users"

    def test_cleanup(self) -> None:
        assert to_identifier("get--users!!") == "get_users"

    def test_empty_uses_fallback(self) -> None:
        assert to_identifier("", fallback="request") == "request"
        assert to_identifier("---") == "unknown"


class TestToClassName:
    def test_basic(self) -> None:
        assert to_class_name("store user request") == "StoreUserRequest"

    def test_mixed_case_kept(self) -> None:
        assert to_class_name("UserResource") == "UserResource"

    def test_suffix_appended(self) -> None:
        assert to_class_name("User store", suffix="Request") == "UserStoreRequest"

    def test_suffix_already_present(self) -> None:
        assert to_class_name("StoreRequest", suffix="Request") == "StoreRequest"

    def test_empty(self) -> None:
        assert to_class_name("") == "Schema"
        assert to_class_name("", suffix="Request") == "SchemaRequest"


class TestClassNames:
    def test_short_class_name(self) -> None:
        assert short_class_name("App\\Http\\Resources\\UserResource") == "UserResource"
        assert short_class_name("UserResource") == "UserResource"

    def test_schema_name_strips_suffix(self) -> None:
        assert schema_name_for_class("App\\Data\\UserData", strip=("Data",)) == "User"

    def test_schema_name_keeps_bare_suffix(self) -> None:
        assert schema_name_for_class("App\\Data\\Data", strip=("Data",)) == "Data"


class TestWords:
    def test_split_camel_and_snake(self) -> None:
        assert split_words("storeUserAvatar") == ["store", "user", "avatar"]
        assert split_words("store_user-avatar") == ["store", "user", "avatar"]

    def test_singular(self) -> None:
        assert singular("users") == "user"
        assert singular("categories") == "category"
        assert singular("boxes") == "box"
        assert singular("address") == "address"


class TestRouteNaming:
    def test_tag_skips_api_and_version(self) -> None:
        assert tag_from_uri("api/v1/users/{id}") == "Users"
        assert tag_from_uri("api/order-items") == "Order Items"

    def test_tag_default(self) -> None:
        assert tag_from_uri("api/{id}") == "Default"

    def test_resource_name(self) -> None:
        assert resource_name("api/users/{user}/blog_posts") == "blog posts"
        assert resource_name("/") == "resource"

    def test_crud_summaries(self) -> None:
        assert summary_for("index", "api/users") == "List users"
        assert summary_for("show", "api/users/{user}") == "Get user"
        assert summary_for("store", "api/users") == "Create user"
        assert summary_for("destroy", "api/users/{user}") == "Delete user"

    def test_custom_action_summary(self) -> None:
        assert summary_for("resendInvitation", "api/users/{user}/invite") == "Resend invitation"

    def test_operation_id_from_route_name(self) -> None:
        assert operation_id("GET", "api/users/{user}", "users.show") == "usersShow"

    def test_operation_id_from_path(self) -> None:
        assert operation_id("GET", "api/users/{user}") == "getApiUsersByUser"
        assert operation_id("POST", "/") == "post"


class TestCaptureFileStem:
    def test_parameters_and_separators(self) -> None:
        assert capture_file_stem("get", "/api/users/{id}") == "GET_api_users_id"
        assert capture_file_stem("POST", "api/v1.0/files:upload/{name?}") == "POST_api_v1_0_files_upload_name"
