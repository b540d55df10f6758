"""Fuzzy search over the session catalog."""

from typing import Any

from rich.console import Console
from rich.text import Text

from session_explorer.models import ProjectBucket, SessionSummary

console = Console()

# Scoring weights for subsequence matches
MATCH_SCORE = 10
CONTIGUOUS_BONUS = 8
WORD_START_BONUS = 6
LENGTH_PENALTY_DIVISOR = 8
WORD_SEPARATORS = frozenset(" /_-.")


def fuzzy_score(query: str, haystack: str) -> int | None:
    """Score query as an ordered subsequence of haystack.

    Returns None when some query character cannot be matched. The empty
    query matches everything with score 0.
    """
    if not query:
        return 0

    score = 0
    qi = 0
    prev_match: int | None = None

    for i, hc in enumerate(haystack):
        if qi >= len(query):
            break
        if hc.lower() == query[qi].lower():
            score += MATCH_SCORE
            if prev_match is not None and i == prev_match + 1:
                score += CONTIGUOUS_BONUS
            if i == 0 or haystack[i - 1] in WORD_SEPARATORS:
                score += WORD_START_BONUS
            prev_match = i
            qi += 1

    if qi != len(query):
        return None
    return score - len(haystack) // LENGTH_PENALTY_DIVISOR


def session_haystack(session: SessionSummary, cwd: str) -> str:
    return f"{session.search_blob}\n{session.file_name}\n{session.id}\n{cwd}"


def score_session(query: str, session: SessionSummary, cwd: str) -> int | None:
    """Best of the full-text score and half the project-path score."""
    best = fuzzy_score(query, session_haystack(session, cwd))
    path_score = fuzzy_score(query, cwd.lower())
    if path_score is not None:
        halved = int(path_score / 2)  # truncates toward zero
        best = halved if best is None else max(best, halved)
    return best


def filter_projects(catalog: list[ProjectBucket], query: str) -> list[ProjectBucket]:
    """Rank and narrow the catalog for a free-text query.

    A blank query returns the catalog order untouched. Otherwise the result
    is rebuilt from scratch: sessions by score then start time, projects by
    number of surviving sessions then cwd.
    """
    if not query.strip():
        return [ProjectBucket(cwd=b.cwd, sessions=list(b.sessions)) for b in catalog]

    query = query.lower()
    filtered: list[ProjectBucket] = []

    for project in catalog:
        scored: list[tuple[int, SessionSummary]] = []
        for session in project.sessions:
            score = score_session(query, session, project.cwd)
            if score is not None:
                scored.append((score, session))

        if not scored:
            continue

        # Stable two-pass sort: start time desc, then score desc
        scored.sort(key=lambda pair: pair[1].started_at, reverse=True)
        scored.sort(key=lambda pair: pair[0], reverse=True)
        filtered.append(ProjectBucket(cwd=project.cwd, sessions=[s for _, s in scored]))

    filtered.sort(key=lambda bucket: bucket.cwd)
    filtered.sort(key=lambda bucket: len(bucket.sessions), reverse=True)
    return filtered


def format_human_output(projects: list[ProjectBucket], query: str, limit: int | None = None) -> None:
    """Print ranked projects and their sessions."""
    if not projects:
        console.print("[yellow]No results found. Try a different query.[/yellow]")
        return

    shown = projects[:limit] if limit else projects
    for bucket in shown:
        header = Text()
        header.append(bucket.cwd, style="green")
        header.append(f"  ({len(bucket.sessions)} sessions)", style="dim")
        console.print(header)
        for session in bucket.sessions:
            line = Text("  ")
            line.append(session.started_at, style="cyan")
            line.append(f"  {session.id}", style="bold")
            line.append(f"  {session.event_count} events", style="dim")
            line.append(f"  {session.path}", style="dim")
            console.print(line)

    console.print("─" * 50)
    console.print(f"Search '{query}' matched {len(projects)} projects")


def projects_to_json(projects: list[ProjectBucket]) -> list[dict[str, Any]]:
    return [
        {
            "cwd": bucket.cwd,
            "sessions": [
                {
                    "id": s.id,
                    "path": str(s.path),
                    "file_name": s.file_name,
                    "started_at": s.started_at,
                    "event_count": s.event_count,
                }
                for s in bucket.sessions
            ],
        }
        for bucket in projects
    ]


def format_json_output(projects: list[ProjectBucket], query: str) -> None:
    """Format results as JSON for programmatic use."""
    console.print_json(
        data={
            "query": query,
            "total_projects": len(projects),
            "projects": projects_to_json(projects),
        }
    )
