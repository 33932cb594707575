"""
End-to-end analyzer tests over the program dumps in tests/fixtures.
"""

import pytest


def _exposed_positions(result):
    return [str(f.site.position) for f in result.exposed]


class TestAnalyze:
    """Tests for analyze() on whole programs."""

    def test_exposed_program(self, fixtures_dir):
        from reckt.analyzer import analyze

        result = analyze(fixtures_dir / "exposed.yaml")

        assert result.verdict == "EXPOSED"
        assert len(result.findings) == 4
        assert _exposed_positions(result) == [
            "main.go:15:3",
            "util/parse.go:5:3",
            "util/unused.go:3:2",
        ]

    def test_spawned_worker_has_empty_path(self, fixtures_dir):
        from reckt.analyzer import analyze

        result = analyze(fixtures_dir / "exposed.yaml")
        worker = result.exposed[0]
        assert worker.site.function.name == "worker"
        assert worker.path == []
        assert not worker.unresolved

    def test_witness_path_runs_innermost_first(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.cfg.call_graph import ROOT_NAME

        result = analyze(fixtures_dir / "exposed.yaml")
        parse = result.exposed[1]
        assert [e.describe() for e in parse.path] == [
            "util.Parse(os.Args)",
            "<root> --> example.com/app.main",
        ]
        assert str(parse.path[0].position) == "main.go:8:13"
        assert parse.path[-1].caller.func.name == ROOT_NAME
        # consecutive edges chain callee-ward
        assert parse.path[0].caller is parse.path[1].callee

    def test_function_outside_call_graph_is_unresolved(self, fixtures_dir):
        from reckt.analyzer import analyze

        result = analyze(fixtures_dir / "exposed.yaml")
        unused = result.exposed[2]
        assert unused.unresolved
        assert unused.path == []
        assert result.graph.node_for(unused.site.function) is None

    def test_deferred_recover_contains_raise(self, fixtures_dir):
        from reckt.analyzer import analyze

        result = analyze(fixtures_dir / "exposed.yaml")
        [must] = [f for f in result.findings if f.site.function.name == "Must"]
        assert not must.exposed
        assert must.path is None

    def test_contained_program(self, fixtures_dir):
        from reckt.analyzer import analyze

        result = analyze(fixtures_dir / "contained.json")
        assert result.verdict == "CONTAINED"
        assert result.exposed == []
        assert len(result.findings) == 1

    def test_summary(self, fixtures_dir):
        from reckt.analyzer import analyze

        assert analyze(fixtures_dir / "exposed.yaml").summary() == (
            "EXPOSED: 3 of 4 raise sites reach a root"
        )
        assert analyze(fixtures_dir / "contained.json").summary() == (
            "CONTAINED: 0 of 1 raise sites reach a root"
        )

    def test_target_recorded(self, fixtures_dir):
        from reckt.analyzer import analyze

        target = fixtures_dir / "contained.json"
        result = analyze(target)
        assert result.target == str(target)
        assert result.tests is False


class TestTestsMode:
    """Analysis rooted at the test functions."""

    def test_library_without_main_fails_by_default(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.errors import NoEntryPointError

        with pytest.raises(NoEntryPointError):
            analyze(fixtures_dir / "tests_only.yaml")

    def test_tests_are_roots(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.ci.config import RecktConfig

        cfg = RecktConfig()
        cfg.analysis.tests = True
        result = analyze(fixtures_dir / "tests_only.yaml", cfg)

        assert result.tests
        assert result.verdict == "EXPOSED"
        decode, testify = result.exposed
        assert [e.describe() for e in decode.path] == [
            "Decode(buf)",
            "<root> --> example.com/lib.TestDecode",
        ]
        # Testify is declared in a test file but is not a test
        assert testify.site.function.name == "Testify"
        assert testify.unresolved

    def test_tests_mode_without_tests(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.ci.config import RecktConfig
        from reckt.errors import NoEntryPointError

        cfg = RecktConfig()
        cfg.analysis.tests = True
        with pytest.raises(NoEntryPointError, match="no tests"):
            analyze(fixtures_dir / "exposed.yaml", cfg)


class TestSetupErrors:

    def test_no_main_function(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.errors import NoEntryPointError

        with pytest.raises(NoEntryPointError):
            analyze(fixtures_dir / "no_main_func.yaml")

    def test_dangling_call_target(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.errors import CallGraphError

        with pytest.raises(CallGraphError, match="example.com/app.missing"):
            analyze(fixtures_dir / "dangling.yaml")

    def test_unloadable_dump(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.errors import ProgramLoadError

        with pytest.raises(ProgramLoadError):
            analyze(fixtures_dir / "broken.yaml")


class TestAnalyzer:
    """Tests for the Analyzer class on in-memory programs."""

    def test_synthetic_wrappers_are_removed_before_search(self):
        from reckt.analyzer import Analyzer
        from tests.program_helpers import call, func, panic, program

        prog = program(
            func("main", call("wrapper")),
            func("wrapper", call("impl"), synthetic="wrapper"),
            func("impl", panic()),
        )
        result = Analyzer().analyze_program(prog)

        [finding] = result.exposed
        assert [e.caller.func.name for e in finding.path] == ["main", "<root>"]
        assert result.graph.node_for(prog.function("example.com/app.wrapper")) is None

    def test_raise_in_synthetic_function_is_unresolved(self):
        from reckt.analyzer import Analyzer
        from tests.program_helpers import call, func, panic, program

        prog = program(
            func("main", call("wrapper")),
            func("wrapper", panic(), synthetic="wrapper"),
        )
        [finding] = Analyzer().analyze_program(prog).exposed
        assert finding.unresolved

    def test_spawn_through_main(self):
        from reckt.analyzer import Analyzer
        from tests.program_helpers import call, defer, func, go, panic, program, recover

        prog = program(
            func("main", defer("handler"), go("serve")),
            func("handler", recover()),
            func("serve", call("step")),
            func("step", panic()),
        )
        [finding] = Analyzer().analyze_program(prog).exposed
        # the recovering defer in main does not protect the spawned task
        assert [e.caller.func.name for e in finding.path] == ["serve"]

    @pytest.mark.parametrize("scope", ["global", "path"])
    def test_visited_scope_from_config(self, fixtures_dir, scope):
        from reckt.analyzer import analyze
        from reckt.ci.config import RecktConfig

        cfg = RecktConfig()
        cfg.analysis.visited_scope = scope
        result = analyze(fixtures_dir / "exposed.yaml", cfg)
        assert len(result.exposed) == 3

    def test_unresolved_findings_can_be_left_out(self, fixtures_dir):
        from reckt.analyzer import analyze
        from reckt.ci.config import RecktConfig

        cfg = RecktConfig()
        cfg.analysis.report_unresolved = False
        result = analyze(fixtures_dir / "exposed.yaml", cfg)

        assert [str(f.site.position) for f in result.exposed] == [
            "main.go:15:3",
            "util/parse.go:5:3",
        ]
        # the finding itself is kept
        assert any(f.unresolved for f in result.findings)
        assert result.summary() == "EXPOSED: 2 of 4 raise sites reach a root"

    def test_suppression_builtin_from_config(self):
        from reckt.analyzer import Analyzer
        from reckt.ci.config import RecktConfig
        from tests.program_helpers import builtin, defer, func, panic, program, call

        prog = program(
            func("main", defer("handler"), call("work")),
            func("handler", builtin("catch")),
            func("work", panic()),
        )
        assert Analyzer().analyze_program(prog).exposed

        cfg = RecktConfig()
        cfg.analysis.suppression_builtin = "catch"
        assert Analyzer(cfg).analyze_program(prog).exposed == []
