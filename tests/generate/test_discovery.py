"""Tests for route discovery: filtering, class lookup and the route table walk."""

from __future__ import annotations

from laradoc.commands.generate.discovery.filter import RouteFilter
from laradoc.commands.generate.discovery.locator import ClassLocator, read_composer_psr4
from laradoc.commands.generate.source_cache import AstCache
from tests.conftest import (
    BASE_CONTROLLER,
    CONTROLLERS,
    STORE_USER_REQUEST,
    USER_MODEL,
    LaravelProject,
    make_route,
)


class TestRouteFilter:
    def test_closures_excluded_by_default(self) -> None:
        route = make_route(controller=None, action="__invoke")
        assert not RouteFilter().should_include(route)
        assert RouteFilter(include_closure_routes=True).should_include(route)

    def test_vendor_routes(self) -> None:
        route = make_route(file="/app/vendor/laravel/sanctum/routes.php")
        assert not RouteFilter().should_include(route)
        assert RouteFilter(include_vendor_routes=True).should_include(route)

    def test_exclusion_patterns(self) -> None:
        f = RouteFilter(excluded_routes=["api/internal/*", "health"])
        assert not f.should_include(make_route(uri="api/internal/jobs"))
        assert not f.should_include(make_route(uri="health"))
        assert f.should_include(make_route(uri="api/users"))

    def test_pattern_matches_route_name(self) -> None:
        f = RouteFilter(excluded_routes=["admin.*"])
        assert not f.should_include(make_route(uri="api/x", name="admin.users"))

    def test_inclusion_patterns_switch_to_whitelist(self) -> None:
        f = RouteFilter(excluded_routes=["!api/v2/*", "api/v2/secret"])
        assert f.has_inclusion_patterns()
        assert f.should_include(make_route(uri="api/v2/users"))
        # Plain patterns are ignored in whitelist mode
        assert f.should_include(make_route(uri="api/v2/secret"))
        assert not f.should_include(make_route(uri="api/v1/users"))

    def test_whitelist_bypasses_api_detection(self) -> None:
        f = RouteFilter(excluded_routes=["!dashboard"])
        assert f.should_include(make_route(uri="dashboard", middleware=("web",)))

    def test_api_detection(self) -> None:
        assert RouteFilter.is_api_route(make_route(middleware=("api", "web")))
        assert RouteFilter.is_api_route(make_route(middleware=("api:throttle",)))
        assert not RouteFilter.is_api_route(make_route(middleware=("web",)))
        assert RouteFilter.is_api_route(make_route(middleware=()))

    def test_api_detection_disabled(self) -> None:
        f = RouteFilter(auto_detect_api_routes=False)
        assert f.should_include(make_route(middleware=("web",)))

    def test_filter_methods(self) -> None:
        assert RouteFilter().filter_methods(["GET", "head", "OPTIONS"]) == ["GET"]

    def test_matches_pattern(self) -> None:
        assert RouteFilter.matches_pattern("api/users", "api/*")
        assert not RouteFilter.matches_pattern("api/users", "api")
        assert RouteFilter.matches_pattern("a.b", "a.b")
        assert not RouteFilter.matches_pattern("axb", "a.b")


class TestClassLocator:
    def test_composer_psr4(self, project: LaravelProject) -> None:
        assert read_composer_psr4(project.root) == {"App\\": "app/"}

    def test_locate_and_load(self, project: LaravelProject, cache: AstCache) -> None:
        project.add_class("App\\Models\\User", USER_MODEL)
        locator = ClassLocator(project.root, cache)
        assert locator.locate("App\\Models\\User") == project.root / "app/Models/User.php"
        info = locator.load("\\App\\Models\\User")
        assert info is not None and info.short_name == "User"
        assert locator.locate("App\\Models\\Missing") is None
        assert locator.load("Vendor\\Thing") is None

    def test_extra_namespaces(self, project: LaravelProject, cache: AstCache) -> None:
        project.write("modules/Billing/Invoice.php", "<?php\nnamespace Billing;\nclass Invoice {}\n")
        locator = ClassLocator(project.root, cache, namespaces={"Billing\\": "modules/Billing/"})
        assert locator.load("Billing\\Invoice") is not None

    def test_is_a_walks_parents(self, project: LaravelProject, cache: AstCache) -> None:
        project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
        project.add_class(
            "App\\Http\\Requests\\AdminStoreUserRequest",
            "<?php\nnamespace App\\Http\\Requests;\nclass AdminStoreUserRequest extends StoreUserRequest {}\n",
        )
        locator = ClassLocator(project.root, cache)
        assert locator.is_a("App\\Http\\Requests\\AdminStoreUserRequest", "form_request")
        assert locator.is_a("App\\Http\\Requests\\StoreUserRequest", "request")
        assert not locator.is_a("App\\Http\\Requests\\StoreUserRequest", "json_resource")
        assert locator.ancestors("App\\Http\\Requests\\AdminStoreUserRequest") == [
            "App\\Http\\Requests\\StoreUserRequest",
            "Illuminate\\Foundation\\Http\\FormRequest",
        ]

    def test_is_a_known_base_directly(self, project: LaravelProject, cache: AstCache) -> None:
        locator = ClassLocator(project.root, cache)
        assert locator.is_a("Illuminate\\Http\\Request", "request")
        assert not locator.is_a(None, "request")

    def test_extra_kinds(self, project: LaravelProject, cache: AstCache) -> None:
        project.add_class(
            "App\\Http\\Requests\\ApiRequest",
            "<?php\nnamespace App\\Http\\Requests;\nuse Acme\\BaseRequest;\nclass ApiRequest extends BaseRequest {}\n",
        )
        locator = ClassLocator(project.root, cache, extra_kinds={"form_request": ["\\Acme\\BaseRequest"]})
        assert locator.is_a("App\\Http\\Requests\\ApiRequest", "form_request")

    def test_find_inherited_method(self, project: LaravelProject, cache: AstCache) -> None:
        project.add_class(
            f"{CONTROLLERS}\\Controller",
            BASE_CONTROLLER.replace("{\n}", "{\n    public function ping() {}\n}"),
        )
        project.add_class(
            f"{CONTROLLERS}\\PingController",
            "<?php\nnamespace App\\Http\\Controllers;\nclass PingController extends Controller {}\n",
        )
        locator = ClassLocator(project.root, cache)
        found = locator.find_method(f"{CONTROLLERS}\\PingController", "ping")
        assert found is not None
        owner, method = found
        assert owner.name == f"{CONTROLLERS}\\Controller"
        assert method.name == "ping"
        assert locator.find_method(f"{CONTROLLERS}\\PingController", "pong") is None
