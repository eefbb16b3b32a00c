"""Tests for attach-mode log streaming."""

import io

import pytest
from rich.console import Console

from bootapp.reconcilers.supervisor import LogStreamSupervisor


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def supervisor(docker, context, output):
    console = Console(file=output, color_system=None, highlight=False, width=200)
    return LogStreamSupervisor(docker, context, console=console)


class TestFormatLine:
    """Test prefix formatting."""

    def test_pads_name(self, supervisor):
        line = supervisor.format_line("demo-web", "GET /", "green")
        assert line == "[green]demo-web         | [/green]GET /"

    def test_escapes_markup(self, supervisor):
        line = supervisor.format_line("demo-web", "[error] boom", "green")
        assert "\\[error]" in line


@pytest.mark.asyncio
class TestLogStreamSupervisor:
    """Test streaming and shutdown."""

    async def test_streams_lines_with_prefix(self, supervisor, output):
        await supervisor.spawn("demo-web", ["sh", "-c", "printf 'one\\n\\ntwo\\n'"])
        await supervisor.wait()

        lines = output.getvalue().splitlines()
        assert lines == ["demo-web         | one", "demo-web         | two"]

    async def test_colors_round_robin(self, supervisor, context):
        await supervisor.spawn("demo-web", ["true"])
        await supervisor.spawn("demo-db", ["true"])
        await supervisor.wait()

        assert context.palette_cursor == 2

    async def test_stop_keeps_containers(self, supervisor, runner):
        await supervisor.spawn("demo-web", ["sleep", "30"])
        supervisor.stop()
        await supervisor.wait()

        assert runner.calls == []

    async def test_interrupt_removes_project_containers(self, supervisor, runner):
        runner.on("docker", "ps", "-q", "-a", "--filter", "label=com.docker.bootapp.project=demo", stdout="c1\nc2\n")
        await supervisor.spawn("demo-web", ["sleep", "30"])

        supervisor.interrupt()
        await supervisor.wait()

        assert runner.commands("docker", "rm") == [["docker", "rm", "-f", "c1", "c2"]]

    async def test_interrupt_without_containers(self, supervisor, runner):
        supervisor.interrupt()
        await supervisor.shutdown()

        assert runner.commands("docker", "ps") == [
            ["docker", "ps", "-q", "-a", "--filter", "label=com.docker.bootapp.project=demo"]
        ]
        assert runner.commands("docker", "rm") == []
