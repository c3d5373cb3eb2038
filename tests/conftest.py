"""Shared fixtures: a small blog corpus about test fixtures and DDD."""

from pathlib import Path

import pytest

DRAFT_BODY = """
## Problem

We have a class under test whose constructor takes five collaborators, and every
test has to build all of them before it can assert anything useful.

## Naive solution

The naive solution is to copy the construction code into every test method, which
works until the constructor signature changes and forty tests break at once.

## Setup method

A setup method moves the construction into one place that runs before each test,
but it hides which collaborators a particular test actually cares about.

## Factory method

A factory method builds the object under test with sensible defaults and lets each
test override only the collaborators it needs to control.

```csharp
private OrderService CreateSut(IClock clock = null)
{
    return new OrderService(clock ?? new FakeClock());
}
```
"""

FIXTURE_SECTION = """
## Test Fixture

Going one step further, a test fixture class owns the factory methods and the
default collaborators, so test classes stay focused on behaviour instead of wiring.
"""

DDD_BODY = """
## Books

Domain-Driven Design by Eric Evans is still the reference text, although the first
few chapters are by far the most approachable part of it.

## Talks and videos

Conference talks on bounded contexts and aggregates are a faster way in than the
books, and most of them are freely available online.

## Blogs

A handful of blogs cover event storming, context mapping and strategic design with
concrete examples taken from real projects.
"""


def write_file(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def draft_body() -> str:
    return DRAFT_BODY


@pytest.fixture
def fixture_post_body() -> str:
    return DRAFT_BODY + FIXTURE_SECTION


@pytest.fixture
def ddd_body() -> str:
    return DDD_BODY


@pytest.fixture
def scenario_root(tmp_path: Path) -> Path:
    """Three files: an undated draft, its published version, an unrelated post."""
    root = tmp_path / "content"
    write_file(root, "draft.md", "---\nstatus: draft\nlayout: post\n---\n" + DRAFT_BODY)
    write_file(
        root,
        "post-v1.md",
        "---\n"
        "layout: post\n"
        "title: Test fixtures in C#\n"
        "date: 2016-08-01\n"
        "categories: [testing]\n"
        "tags: [csharp, unit-testing]\n"
        "summary: From setup methods to factory methods to fixtures.\n"
        "comments: true\n"
        "---\n" + DRAFT_BODY + FIXTURE_SECTION,
    )
    write_file(
        root,
        "post-v2.md",
        "---\n"
        "layout: post\n"
        "title: DDD resources\n"
        "date: 2016-12-27\n"
        "category: ddd\n"
        "---\n" + DDD_BODY,
    )
    return root
