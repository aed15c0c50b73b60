"""
Analyzer for comparing and visualizing dispatch results.
"""

from typing import Any, Dict, List, Optional
import json

import pandas as pd
from rich.console import Console
from rich.table import Table

from .models import AssignmentResult, StopKind

CONSOLE = Console()


class DispatchAnalyzer:
    """Analyzes and compares dispatch results from different strategies."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize the analyzer."""
        self.results: List[AssignmentResult] = []
        self.console = console or CONSOLE

    def add_result(self, result: AssignmentResult):
        """Add a result to analyze."""
        self.results.append(result)

    def clear_results(self):
        """Clear all stored results."""
        self.results = []

    def compare_strategies(self) -> Dict[str, Any]:
        """
        Compare all stored results.

        Distances are only compared between results that assigned the same,
        maximal number of orders; a shorter tour that leaves work behind is
        not better.

        Returns:
            Dictionary with comparison metrics
        """
        if not self.results:
            return {}

        most_assigned = max(r.assigned_count for r in self.results)
        complete = [r for r in self.results if r.assigned_count == most_assigned]

        return {
            "strategies": [r.get_summary() for r in self.results],
            "best_assignments": max(self.results, key=lambda r: r.assigned_count).strategy_name,
            "best_distance": min(complete, key=lambda r: r.total_distance).strategy_name,
            "best_efficiency": max(self.results, key=lambda r: r.efficiency).strategy_name,
            "fewest_vehicles": min(complete, key=lambda r: len(r.plans)).strategy_name,
            "fastest": min(self.results, key=lambda r: r.computation_time).strategy_name,
        }

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get statistical summary of all results.

        Returns:
            Dictionary with min/max/avg per metric
        """
        if not self.results:
            return {}

        frame = self.to_dataframe()
        stats: Dict[str, Any] = {"num_strategies": len(self.results)}
        for column in ("num_assigned", "total_distance", "efficiency", "computation_time"):
            stats[column] = {
                "min": float(frame[column].min()),
                "max": float(frame[column].max()),
                "avg": float(frame[column].mean()),
            }
        return stats

    def to_dataframe(self) -> pd.DataFrame:
        """One row per result, indexed by strategy name."""
        rows = [r.get_summary() for r in self.results]
        return pd.DataFrame(rows).set_index("strategy") if rows else pd.DataFrame()

    def print_comparison(self):
        """Print a formatted comparison of all results."""
        if not self.results:
            self.console.print("No results to compare.")
            return

        table = Table(title="Dispatch Strategy Comparison")
        table.add_column("Strategy", style="bold")
        table.add_column("Assigned", justify="right")
        table.add_column("Unassigned", justify="right")
        table.add_column("Vehicles", justify="right")
        table.add_column("Distance", justify="right")
        table.add_column("Efficiency", justify="right")
        table.add_column("Time (s)", justify="right")
        for result in self.results:
            table.add_row(
                result.strategy_name,
                str(result.assigned_count),
                str(result.unassigned_count),
                str(len(result.plans)),
                f"{result.total_distance:.2f}",
                f"{result.efficiency:.0%}",
                f"{result.computation_time:.6f}",
            )
        self.console.print(table)

        comparison = self.compare_strategies()
        self.console.print(f"[b]Most Assignments[/b]:  {comparison['best_assignments']}")
        self.console.print(f"[b]Shortest Distance[/b]: {comparison['best_distance']}")
        self.console.print(f"[b]Fewest Vehicles[/b]:   {comparison['fewest_vehicles']}")
        self.console.print(f"[b]Fastest[/b]:           {comparison['fastest']}")

    def export_to_json(self, filepath: str):
        """
        Export results to JSON file.

        Args:
            filepath: Path to output JSON file
        """
        data = {
            "comparison": self.compare_strategies(),
            "statistics": self.get_statistics(),
            "results": [
                {
                    **result.get_summary(),
                    "plans": [
                        {
                            "vehicle_id": plan.vehicle_id,
                            "order_ids": plan.order_ids,
                            "distance": plan.distance,
                            "duration_minutes": plan.duration_minutes,
                            "route": [
                                {"x": s.point.x, "y": s.point.y, "kind": s.kind.value, "order_id": s.order_id}
                                for s in plan.route
                            ],
                        }
                        for plan in result.plans
                    ],
                    "unassigned": [o.order_id for o in result.unassigned_orders],
                    "rejected": [
                        {"order_id": r.order.order_id, "reason": r.reason.value}
                        for r in result.rejected_orders
                    ],
                }
                for result in self.results
            ],
        }

        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    def visualize(self, save_path: Optional[str] = None):
        """
        Plot the planned routes of every stored result side by side.
        Requires matplotlib library.

        Args:
            save_path: Path to save the figure (if None, displays interactively)
        """
        try:
            import matplotlib.pyplot as plt
        except ImportError:
            self.console.print("matplotlib is required for visualization. Install it with: pip install matplotlib")
            return

        if not self.results:
            self.console.print("No results to visualize.")
            return

        num_results = len(self.results)
        fig, axes = plt.subplots(1, num_results, figsize=(6 * num_results, 6))

        if num_results == 1:
            axes = [axes]

        for ax, result in zip(axes, self.results):
            for plan in result.plans:
                xs = [s.point.x for s in plan.route]
                ys = [s.point.y for s in plan.route]
                ax.plot(xs, ys, '-', alpha=0.6, label=f"Vehicle {plan.vehicle_id}")
                deliveries = [s.point for s in plan.route if s.kind is StopKind.DELIVERY]
                ax.scatter([p.x for p in deliveries], [p.y for p in deliveries], marker='o', s=60)

            if result.plans:
                depot = result.plans[0].route[0].point
                ax.scatter([depot.x], [depot.y], c='black', marker='s', s=120, label='Depot')

            leftovers = result.unassigned_orders + [r.order for r in result.rejected_orders]
            if leftovers:
                ax.scatter([o.location.x for o in leftovers], [o.location.y for o in leftovers],
                           c='gray', marker='x', s=80, label='Unassigned')

            ax.set_title(f"{result.strategy_name}\nDistance: {result.total_distance:.2f}")
            ax.set_xlabel("X coordinate")
            ax.set_ylabel("Y coordinate")
            ax.legend()
            ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            plt.close(fig)
            self.console.print(f"Visualization saved to {save_path}")
        else:
            plt.show()
