"""Shared test fixtures and configuration."""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from gessage.formatters import CommitMessage
from gessage.llm.exceptions import GenerationError
from gessage.llm.registry import BackendDescriptor, BackendRegistry


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_dir(temp_dir, mocker):
    """Point ~/.gessage at a temporary directory."""
    mock_dir = temp_dir / ".gessage"
    mocker.patch("gessage.global_config._CONFIG_DIR", mock_dir)
    return mock_dir


@pytest.fixture
def sample_diff():
    """Sample staged diff touching two files."""
    return """diff --git a/a.go b/a.go
index 1234567..abcdefg 100644
--- a/a.go
+++ b/a.go
@@ -1,3 +1,5 @@
 package main
+
+import "fmt"
-func old() {}
+func main() { fmt.Println("hi") }
diff --git a/b.go b/b.go
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/b.go
"""


class ScriptedGenerator:
    """Generator returning queued replies; exceptions in the queue are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def generate(self, ctx, prompt, max_tokens):
        self.calls.append((prompt, max_tokens))
        if not self.replies:
            raise GenerationError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def scripted_generator():
    """Factory for ScriptedGenerator instances."""
    return ScriptedGenerator


@dataclass
class FakeBackends:
    """A registry of scripted backends and the generators it has built."""

    registry: BackendRegistry
    built: dict = field(default_factory=dict)


@pytest.fixture
def fake_backends():
    """Registry with two fake backends named like the bundled defaults.

    Each construct call records (generator, settings) in built under the
    backend name.
    """
    built = {}

    def make(name):
        def construct(settings):
            generator = ScriptedGenerator("feat(core): add thing")
            built[name] = (generator, settings)
            return generator
        return BackendDescriptor(name=name, construct=construct, setup=lambda current=None: {"model": "m"})

    return FakeBackends(BackendRegistry([make("gpt4-o"), make("ollama")]), built)


@pytest.fixture
def sample_message():
    """A valid commit message with a body."""
    return CommitMessage(title="feat(cli): add dry-run flag", body="Print the prompt without calling a backend.")
