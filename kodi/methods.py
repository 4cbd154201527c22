"""
Builders for the Kodi JSON-RPC calls the notifier is usually asked to make.

Each helper returns a fresh JsonRpcRequest; optional arguments left at
their empty default are omitted from params so Kodi applies its own.
"""
from __future__ import annotations

from typing import Any

from kodi.rpc import JsonRpcRequest, PING_METHOD


def ping() -> JsonRpcRequest:
    return JsonRpcRequest(method=PING_METHOD)


def _library_params(directory: str, show_dialogs: bool) -> dict[str, Any]:
    params: dict[str, Any] = {"showdialogs": show_dialogs}
    if directory:
        params["directory"] = directory
    return params


def scan_video_library(directory: str = "", show_dialogs: bool = False) -> JsonRpcRequest:
    """Scan the whole video library, or only `directory` when given."""
    return JsonRpcRequest(
        method="VideoLibrary.Scan",
        params=_library_params(directory, show_dialogs),
    )


def clean_video_library(directory: str = "", show_dialogs: bool = False) -> JsonRpcRequest:
    params = _library_params(directory, show_dialogs)
    if not directory:
        params["content"] = "video"
    return JsonRpcRequest(method="VideoLibrary.Clean", params=params)


def refresh_movie(movie_id: int, ignore_nfo: bool = False) -> JsonRpcRequest:
    return JsonRpcRequest(
        method="VideoLibrary.RefreshMovie",
        params={"movieid": movie_id, "ignorenfo": ignore_nfo},
    )


def refresh_tvshow(tvshow_id: int, ignore_nfo: bool = False,
                   refresh_episodes: bool = False) -> JsonRpcRequest:
    return JsonRpcRequest(
        method="VideoLibrary.RefreshTVShow",
        params={
            "tvshowid": tvshow_id,
            "ignorenfo": ignore_nfo,
            "refreshepisodes": refresh_episodes,
        },
    )


def refresh_episode(episode_id: int, ignore_nfo: bool = False) -> JsonRpcRequest:
    return JsonRpcRequest(
        method="VideoLibrary.RefreshEpisode",
        params={"episodeid": episode_id, "ignorenfo": ignore_nfo},
    )


def show_notification(title: str, message: str, display_time: int = 5000) -> JsonRpcRequest:
    """Pop up a toast on the Kodi GUI. `display_time` is in milliseconds."""
    return JsonRpcRequest(
        method="GUI.ShowNotification",
        params={"title": title, "message": message, "displaytime": display_time},
    )
