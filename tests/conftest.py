"""Shared fixtures: a small blog source tree."""

from pathlib import Path
from typing import Callable

import pytest

KAFKA_BODY = """\
Integration tests against a real broker beat mocks. I use
[Testcontainers][tc] to start [Kafka][] inside Docker.

```scala
val container = new KafkaContainer(DockerImageName.parse("confluentinc/cp-kafka"))
// [not a reference][nope] inside code
```

[tc]: https://testcontainers.com
[Kafka]: https://kafka.apache.org
"""

SCALA_BODY = """\
Phantom types make illegal states unrepresentable.

```scala
sealed trait State
final case class Door[S <: State](name: String)
```

Compare `List[Int]` with `Either[String, Int]` & friends.
"""


def _header(
    title: str,
    layout: str,
    date: str | None,
    tags: list[str] | None,
    category: str | None,
) -> str:
    lines = ["---", f'title: "{title}"', f"layout: {layout}"]
    if date is not None:
        lines.append(f"date: {date}")
    if tags is not None:
        lines.append("tags: [" + ", ".join(tags) + "]")
    if category is not None:
        lines.append(f"category: {category}")
    lines.append("---")
    return "\n".join(lines) + "\n\n"


@pytest.fixture
def write_post() -> Callable[..., Path]:
    """Return a helper that writes one source file with a front matter header."""

    def _write(
        directory: Path,
        name: str,
        *,
        title: str = "Untitled",
        layout: str = "post",
        date: str | None = "2020-01-01",
        tags: list[str] | None = None,
        category: str | None = None,
        body: str = "Some text.\n",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(_header(title, layout, date, tags, category) + body, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_site(tmp_path: Path, write_post: Callable[..., Path]) -> Path:
    """A site with three posts, one draft, a stylesheet and a README."""
    source = tmp_path / "site"
    posts = source / "_posts"
    write_post(
        posts,
        "2020-01-01-hello.md",
        title="Hello",
        tags=["intro"],
        category="Meta",
        body="# Hi\n\nSome *text*.\n",
    )
    write_post(
        posts,
        "2021-03-15-kafka-testing.md",
        title="Testing Kafka with Docker",
        date="2021-03-15 09:30:00 +0100",
        tags=["docker", "kafka", "testing"],
        category="Testing",
        body=KAFKA_BODY,
    )
    write_post(
        posts,
        "2022-06-01-type-safety.md",
        title="Type Safety in Scala",
        date=None,
        tags=["scala", "types"],
        category="Scala",
        body=SCALA_BODY,
    )
    write_post(
        source / "_drafts",
        "resilience.md",
        title="On Resilience",
        date=None,
        tags=["philosophy"],
        body="Systems that bend do not break.\n",
    )
    (source / "assets").mkdir()
    (source / "assets" / "style.css").write_text("body { margin: 0 auto; }\n", encoding="utf-8")
    (source / "README.md").write_text("# My blog sources\n", encoding="utf-8")
    return source
