"""
Command-line interface tools for the Mindspace service.
"""

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, get_args

import httpx
import typer

from .analytics import MoodAnalytics
from .models import MoodLabel
from .ratings import recompute_all_ratings
from .store import JsonFileStore

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="Mindspace CLI tools")

BASE_URL_OPTION = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mindspace service"
)
MOOD_HELP = "One of: " + ", ".join(get_args(MoodLabel))
USER_OPTION = typer.Option(
    ..., "--user", envvar="MINDSPACE_USER", help="User id sent as X-User-Id"
)


# MARK: - Commands


@app.command()
def log_mood(
    mood: str = typer.Argument(..., help=MOOD_HELP),
    score: int = typer.Argument(..., min=1, max=5, help="Mood score from 1 to 5"),
    factor: list[str] = typer.Option(
        [], "--factor", "-f", help="Contributing factor (repeatable)"
    ),
    notes: str = typer.Option("", "--notes", "-n", help="Free-form notes"),
    user: str = USER_OPTION,
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Record a mood check-in."""

    async def _log_mood() -> None:
        async with _client(base_url, user) as client:
            response = await client.post(
                "/mood",
                json={"mood": mood, "score": score, "factors": factor, "notes": notes},
            )
            _raise_for_status(response)
            entry = response.json()["entry"]
            print(f"Saved {entry['mood']} ({entry['score']}/5) as {entry['id']}")

    _run_with_error_handling(_log_mood(), base_url)


@app.command()
def analytics(
    user: str = USER_OPTION,
    base_url: str = BASE_URL_OPTION,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show mood analytics for a user."""

    async def _analytics() -> None:
        async with _client(base_url, user) as client:
            response = await client.get("/mood/analytics")
            _raise_for_status(response)
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            if result["analytics"] is None:
                print("No mood data")
                return

            _print_analytics(MoodAnalytics.model_validate(result["analytics"]))

    _run_with_error_handling(_analytics(), base_url)


@app.command()
def resources(
    category: str | None = typer.Option(None, "--category", "-c"),
    search: str | None = typer.Option(None, "--search", "-s"),
    limit: int = typer.Option(20, "--limit", "-l"),
    offset: int = typer.Option(0, "--offset", "-o"),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """List resources from the library."""

    async def _resources() -> None:
        params = _params(category=category, search=search, limit=limit, offset=offset)
        async with httpx.AsyncClient(base_url=base_url) as client:
            response = await client.get("/resources", params=params)
            _raise_for_status(response)
            result = response.json()
            for item in result["resources"]:
                print(f"{item['rating']:.1f}  {item['title']} [{item['category']}]")
            _print_pagination(result["pagination"])

    _run_with_error_handling(_resources(), base_url)


@app.command()
def counselors(
    specialty: str | None = typer.Option(None, "--specialty"),
    location: str | None = typer.Option(None, "--location"),
    availability: str | None = typer.Option(
        None, "--availability", help="today, week or month"
    ),
    limit: int = typer.Option(20, "--limit", "-l"),
    offset: int = typer.Option(0, "--offset", "-o"),
    base_url: str = BASE_URL_OPTION,
) -> None:
    """List counselors from the directory."""

    async def _counselors() -> None:
        params = _params(
            specialty=specialty,
            location=location,
            availability=availability,
            limit=limit,
            offset=offset,
        )
        async with httpx.AsyncClient(base_url=base_url) as client:
            response = await client.get("/counselors", params=params)
            _raise_for_status(response)
            result = response.json()
            for item in result["counselors"]:
                city = item["location"]["city"]
                print(
                    f"{item['rating']:.1f}  {item['name']} ({city}), "
                    f"{item['reviews']} reviews"
                )
            _print_pagination(result["pagination"])

    _run_with_error_handling(_counselors(), base_url)


@app.command()
def feedback(
    feedback_type: str = typer.Argument(..., help="resource, counselor or platform"),
    rating: int = typer.Argument(..., min=1, max=5),
    target: str | None = typer.Option(None, "--target", "-t", help="Target id"),
    comment: str = typer.Option("", "--comment"),
    user: str = USER_OPTION,
    base_url: str = BASE_URL_OPTION,
) -> None:
    """Submit feedback on a resource, counselor or the platform."""

    async def _feedback() -> None:
        async with _client(base_url, user) as client:
            payload = {"type": feedback_type, "rating": rating, "comment": comment}
            if target:
                payload["targetId"] = target
            response = await client.post("/feedback", json=payload)
            _raise_for_status(response)
            print(f"Feedback recorded: {response.json()['feedbackId']}")

    _run_with_error_handling(_feedback(), base_url)


@app.command()
def rebuild_ratings(
    db_path: Path = typer.Argument(Path("database.json"), help="Database file"),
) -> None:
    """Recompute every rating in a database file from its feedback log."""
    if not db_path.exists():
        print(f"Error: {db_path} does not exist")
        raise typer.Exit(1)

    async def _rebuild() -> None:
        store = JsonFileStore(db_path)
        await store.load()
        async with store.transaction() as database:
            updated = recompute_all_ratings(database)
        print(f"Recomputed {updated} ratings")

    try:
        asyncio.run(_rebuild())
    except Exception as e:
        print(f"Error: {e}")
        raise typer.Exit(1)


@app.command()
def serve() -> None:
    """Run the API server."""
    from .server import main

    main()


# MARK: - Private Helpers


def _client(base_url: str, user: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, headers={"X-User-Id": user})


def _params(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _raise_for_status(response: httpx.Response) -> None:
    """Print the server's validation details before failing on 4xx/5xx."""
    if response.status_code == 400:
        for detail in response.json().get("details", []):
            print(f"Invalid {detail['field']}: {detail['message']}")
    response.raise_for_status()


def _print_analytics(report: MoodAnalytics) -> None:
    print(f"Entries: {report.total_entries}")
    print(f"Average score: {report.average_score:.2f}")
    for mood, count in report.mood_distribution.items():
        print(f"  {mood}: {count}")
    if report.factor_analysis:
        print("Factors:")
        for factor, stats in report.factor_analysis.items():
            print(f"  {factor}: {stats.count} entries, avg {stats.average_score:.2f}")
    if report.trend:
        print("Last 30 days:")
        for point in report.trend:
            print(f"  {point.date} {point.score} {point.mood}")


def _print_pagination(pagination: dict[str, Any]) -> None:
    shown_to = min(pagination["offset"] + pagination["limit"], pagination["total"])
    more = " (more available)" if pagination["hasMore"] else ""
    print(f"Showing {pagination['offset']}-{shown_to} of {pagination['total']}{more}")


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
