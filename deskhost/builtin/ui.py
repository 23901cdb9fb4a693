"""Views, palette commands and actions every workspace gets."""

from __future__ import annotations

from typing import Any

from deskhost.commands.models import CommandType

PROJECT_VIEWS = (
    {"id": "deskhost-project-plugins", "name": "project-plugins", "icon": "extension", "tooltip": "deskhost.views.plugins"},
    {"id": "deskhost-project-dependencies", "name": "project-dependencies", "icon": "widgets", "tooltip": "deskhost.views.dependencies"},
    {"id": "deskhost-project-configurations", "name": "project-configurations", "icon": "settings_applications", "tooltip": "deskhost.views.configurations"},
    {"id": "deskhost-project-tasks", "name": "project-tasks", "icon": "assignment", "tooltip": "deskhost.views.tasks"},
)


def register(api: Any) -> None:
    for view in PROJECT_VIEWS:
        api.add_view(view)
        api.add_command(
            f"open-view:{view['name']}",
            view["name"].replace("project-", "").capitalize(),
            type=CommandType.ACTION,
            icon=view["icon"],
            description=view["tooltip"],
        )

    def _list_plugins(params: Any) -> list[dict[str, Any]]:
        include_hidden = bool(params.get("hidden")) if isinstance(params, dict) else False
        return [p.to_dict() for p in api.plugins if include_hidden or not p.hidden]

    api.on_action("deskhost.plugins.list", _list_plugins)
    api.on_action("deskhost.project.info", lambda _params: api.get_project().to_dict())
