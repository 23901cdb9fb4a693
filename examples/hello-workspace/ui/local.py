"""Workspace-local UI module declared in package.json."""


def register(api):
    api.on_action("local.ping", lambda _params: "pong")
