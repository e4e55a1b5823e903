"""Shared test fixtures for laradoc tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from laradoc.commands.generate.discovery.locator import ClassLocator
from laradoc.commands.generate.discovery.routes import collect_attributes
from laradoc.commands.generate.extractors.base import AnalysisTools
from laradoc.commands.generate.php.classes import ClassInfo, ParsedFile, build_parsed_file
from laradoc.commands.generate.php.parser import parse_source
from laradoc.commands.generate.schema_registry import SchemaRegistry
from laradoc.commands.generate.source_cache import AstCache
from laradoc.commands.generate.types import AnalysisContext, RouteInfo
from laradoc.formats.config import LaradocConfig, load_config

CONTROLLERS = "App\\Http\\Controllers"

BASE_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

abstract class Controller
{
}
"""

USER_MODEL = """<?php

namespace App\\Models;

use Illuminate\\Database\\Eloquent\\Model;

class User extends Model
{
}
"""

USER_CONTROLLER = """<?php

namespace App\\Http\\Controllers;

use App\\Http\\Requests\\StoreUserRequest;
use App\\Http\\Resources\\UserResource;
use App\\Models\\User;
use Illuminate\\Http\\JsonResponse;
use Illuminate\\Http\\Request;

class UserController extends Controller
{
    /**
     * List users.
     *
     * @queryParam search string Filter by name
     */
    public function index(Request $request)
    {
        $perPage = $request->integer('per_page', 15);
        $users = User::query()->paginate($perPage);
        return UserResource::collection($users);
    }

    public function show(User $user): UserResource
    {
        return new UserResource($user);
    }

    public function store(StoreUserRequest $request)
    {
        $user = User::create($request->validated());
        return new UserResource($user);
    }

    public function update(Request $request, User $user): JsonResponse
    {
        $data = $request->validate([
            'name' => 'sometimes|string|max:255',
            'email' => ['sometimes', 'email'],
        ]);
        $user->update($data);
        return response()->json(['updated' => true, 'id' => $user->id]);
    }

    /**
     * Remove a user.
     *
     * @deprecated
     */
    public function destroy(User $user)
    {
        $this->authorize('delete', $user);
        $user->delete();
        return response()->noContent();
    }
}
"""

STORE_USER_REQUEST = """<?php

namespace App\\Http\\Requests;

use Illuminate\\Foundation\\Http\\FormRequest;

class StoreUserRequest extends FormRequest
{
    public function authorize(): bool
    {
        return true;
    }

    public function rules(): array
    {
        return [
            'name' => 'required|string|max:255',
            'email' => 'required|email',
            'password' => 'required|string|min:8|confirmed',
            'roles' => 'array',
            'roles.*' => 'string|in:admin,editor',
            'address.street' => 'required|string',
            'address.city' => 'string',
        ];
    }
}
"""

USER_RESOURCE = """<?php

namespace App\\Http\\Resources;

use Illuminate\\Http\\Resources\\Json\\JsonResource;

class UserResource extends JsonResource
{
    public function toArray($request): array
    {
        return [
            'id' => $this->id,
            'name' => $this->name,
            'email' => $this->email,
            'is_admin' => (bool) $this->is_admin,
            'team' => $this->whenLoaded('team'),
            'created_at' => $this->created_at?->toIso8601String(),
        ];
    }
}
"""

EXCEPTION_HANDLER = """<?php

namespace App\\Exceptions;

use Illuminate\\Foundation\\Exceptions\\Handler as ExceptionHandler;
use Throwable;

class Handler extends ExceptionHandler
{
    public function render($request, Throwable $e)
    {
        return response()->json([
            'success' => false,
            'message' => $e->getMessage(),
            'code' => $e->getCode(),
        ], 500);
    }
}
"""


def _user_route(uri: str, method: str, action: str, middleware: list[str]) -> dict[str, Any]:
    return {
        "uri": uri,
        "method": method,
        "action": f"{CONTROLLERS}\\UserController@{action}",
        "name": f"users.{action}",
        "middleware": middleware,
    }


USER_ROUTES: list[dict[str, Any]] = [
    _user_route("api/users", "GET|HEAD", "index", ["api", "auth:sanctum"]),
    _user_route("api/users", "POST", "store", ["api", "auth:sanctum", "throttle:30,1"]),
    _user_route("api/users/{user}", "GET|HEAD", "show", ["api"]),
    _user_route("api/users/{user}", "PUT", "update", ["api", "auth:sanctum"]),
    _user_route("api/users/{user}", "DELETE", "destroy", ["api", "auth:sanctum"]),
    {"uri": "up", "method": "GET|HEAD", "action": "Closure", "middleware": ["web"]},
    {
        "uri": "dashboard",
        "method": "GET|HEAD",
        "action": f"{CONTROLLERS}\\DashboardController",
        "middleware": ["web"],
    },
]


class LaravelProject:
    """A throwaway Laravel project tree: composer.json, PHP classes, routes.json, laradoc.yaml."""

    def __init__(self, root: Path):
        self.root = root
        self.routes: list[dict[str, Any]] = []
        self.write(
            "composer.json",
            json.dumps({"autoload": {"psr-4": {"App\\": "app/"}}}, indent=2),
        )

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def add_class(self, fqcn: str, source: str) -> Path:
        """Write *source* where PSR-4 expects *fqcn* (``App\\`` → ``app/``)."""
        relative = fqcn.removeprefix("App\\").replace("\\", "/")
        return self.write(f"app/{relative}.php", source)

    def add_route(
        self,
        uri: str,
        action: str = "Closure",
        method: str = "GET|HEAD",
        middleware: list[str] | None = None,
        **extra: Any,
    ) -> None:
        self.routes.append(
            {"uri": uri, "method": method, "action": action, "middleware": middleware or ["api"], **extra}
        )
        self.save_routes()

    def save_routes(self) -> Path:
        return self.write("routes.json", json.dumps(self.routes, indent=2))

    def write_config(self, **overrides: Any) -> Path:
        data: dict[str, Any] = {
            "routes_file": "routes.json",
            "output_dir": "docs",
            "cache": {"enabled": False},
        }
        data.update(overrides)
        return self.write("laradoc.yaml", yaml.dump(data, default_flow_style=False, sort_keys=False))

    def config(self, **overrides: Any) -> LaradocConfig:
        return load_config(self.write_config(**overrides))


@pytest.fixture
def project(tmp_path: Path) -> LaravelProject:
    return LaravelProject(tmp_path)


@pytest.fixture
def users_project(project: LaravelProject) -> LaravelProject:
    """The users API: a resource controller, a form request, an API resource and a model."""
    project.add_class(f"{CONTROLLERS}\\Controller", BASE_CONTROLLER)
    project.add_class(f"{CONTROLLERS}\\UserController", USER_CONTROLLER)
    project.add_class("App\\Http\\Requests\\StoreUserRequest", STORE_USER_REQUEST)
    project.add_class("App\\Http\\Resources\\UserResource", USER_RESOURCE)
    project.add_class("App\\Models\\User", USER_MODEL)
    project.routes = list(USER_ROUTES)
    project.save_routes()
    project.write_config()
    return project


@pytest.fixture
def cache() -> AstCache:
    return AstCache()


@pytest.fixture
def tools(project: LaravelProject, cache: AstCache) -> AnalysisTools:
    return AnalysisTools(locator=ClassLocator(project.root, cache), schemas=SchemaRegistry())


def parse_php(source: str, path: str = "Test.php") -> ParsedFile:
    """Parse PHP source text into the class-level model."""
    return build_parsed_file(Path(path), parse_source(source))


def parse_class(source: str) -> ClassInfo:
    """The first class declared in *source*."""
    parsed = parse_php(source)
    assert parsed.classes, "no class in source"
    return parsed.classes[0]


def make_route(
    uri: str = "api/users",
    method: str = "GET",
    controller: str | None = f"{CONTROLLERS}\\UserController",
    action: str = "index",
    middleware: tuple[str, ...] = ("api",),
    **kwargs: Any,
) -> RouteInfo:
    """Helper to create a RouteInfo with minimal boilerplate."""
    return RouteInfo(
        uri=uri,
        methods=(method,),
        controller=controller,
        action=action,
        middleware=middleware,
        path_parameters=RouteInfo.parameters_from_uri(uri),
        **kwargs,
    )


def make_context(
    source: str | None = None,
    method_name: str | None = None,
    route: RouteInfo | None = None,
    **route_kwargs: Any,
) -> AnalysisContext:
    """Context for *method_name* of the first class in *source*.

    Without source the context carries route information only.
    """
    if source is None:
        return AnalysisContext(route=route or make_route(**route_kwargs))
    controller = parse_class(source)
    method = controller.method(method_name) if method_name else None
    if route is None:
        route_kwargs.setdefault("controller", controller.name)
        route_kwargs.setdefault("action", method_name or "__invoke")
        route = make_route(**route_kwargs)
    attributes = collect_attributes(controller.attributes, method.attributes if method else [])
    return AnalysisContext(
        route=route,
        method=method,
        controller=controller,
        ast=method.body if method else None,
        attributes=attributes,
    )
