"""
Tests for the dispatch analyzer.
"""

import importlib.util
import io
import json
import os
import tempfile
import unittest
from datetime import datetime

from rich.console import Console

from drone_dispatch.analyzer import DispatchAnalyzer
from drone_dispatch.problem import DispatchProblem
from drone_dispatch.strategies import Strategy

NOW = datetime(2025, 1, 1, 12, 0, 0)


class TestDispatchAnalyzer(unittest.TestCase):
    """Test DispatchAnalyzer class."""

    def setUp(self):
        """Set up test fixtures."""
        self.output = io.StringIO()
        self.analyzer = DispatchAnalyzer(console=Console(file=self.output, width=200))

    def solve(self, strategy):
        problem = DispatchProblem.generate_random_problem(3, 8, seed=42, now=NOW)
        return problem.dispatch(strategy, seed=42, now=NOW)

    def add_all(self):
        for strategy in Strategy:
            self.analyzer.add_result(self.solve(strategy))

    def test_add_result(self):
        self.analyzer.add_result(self.solve(Strategy.PRIORITY_FIRST))
        self.assertEqual(len(self.analyzer.results), 1)

    def test_clear_results(self):
        self.add_all()
        self.analyzer.clear_results()
        self.assertEqual(self.analyzer.results, [])

    def test_compare_strategies(self):
        self.add_all()
        comparison = self.analyzer.compare_strategies()

        self.assertEqual(len(comparison["strategies"]), 4)
        names = {s.value for s in Strategy}
        for key in ("best_assignments", "best_distance", "best_efficiency", "fewest_vehicles", "fastest"):
            self.assertIn(comparison[key], names)

        most = max(r.assigned_count for r in self.analyzer.results)
        best = next(r for r in self.analyzer.results if r.strategy_name == comparison["best_distance"])
        self.assertEqual(best.assigned_count, most)

    def test_compare_empty(self):
        self.assertEqual(self.analyzer.compare_strategies(), {})
        self.assertEqual(self.analyzer.get_statistics(), {})

    def test_get_statistics(self):
        self.add_all()
        stats = self.analyzer.get_statistics()

        self.assertEqual(stats["num_strategies"], 4)
        for column in ("num_assigned", "total_distance", "efficiency", "computation_time"):
            self.assertLessEqual(stats[column]["min"], stats[column]["avg"] + 1e-9)
            self.assertLessEqual(stats[column]["avg"], stats[column]["max"] + 1e-9)

    def test_to_dataframe(self):
        self.add_all()
        frame = self.analyzer.to_dataframe()
        self.assertEqual(sorted(frame.index), sorted(s.value for s in Strategy))
        self.assertIn("total_distance", frame.columns)

    def test_print_comparison(self):
        self.add_all()
        self.analyzer.print_comparison()
        text = self.output.getvalue()
        self.assertIn("Dispatch Strategy Comparison", text)
        for strategy in Strategy:
            self.assertIn(strategy.value, text)

    def test_print_without_results(self):
        self.analyzer.print_comparison()
        self.assertIn("No results to compare.", self.output.getvalue())

    def test_export_to_json(self):
        self.analyzer.add_result(self.solve(Strategy.BALANCED_OPTIMIZATION))

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            temp_path = f.name

        try:
            self.analyzer.export_to_json(temp_path)
            with open(temp_path) as f:
                data = json.load(f)

            self.assertIn("comparison", data)
            self.assertIn("statistics", data)
            result = data["results"][0]
            self.assertEqual(result["strategy"], "balanced_optimization")
            self.assertEqual(len(result["plans"]), result["num_vehicles_used"])
            for plan in result["plans"]:
                self.assertEqual(plan["route"][0]["kind"], "depot")
                self.assertEqual(plan["route"][-1]["kind"], "depot")
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

    @unittest.skipUnless(importlib.util.find_spec("matplotlib"), "matplotlib not installed")
    def test_visualize_to_file(self):
        import matplotlib
        matplotlib.use("Agg")

        self.add_all()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "routes.png")
            self.analyzer.visualize(save_path=path)
            self.assertTrue(os.path.exists(path))


if __name__ == '__main__':
    unittest.main()
