#!/usr/bin/env python3
"""
Seed script to generate a large schedule for performance testing.

Generates a DAG of tasks in memory with a realistic project structure:
- One parent "phase" per wave of tasks
- Multiple parallel tracks
- Diamond patterns (convergence points)
- Milestones

and times loading it, building the timeline scale and running a cascade.

Usage:
    python -m scripts.seed [--nodes 500] [--zoom day] [--seed 7]

Options:
    --nodes N    Number of leaf tasks to generate (default: 500)
    --zoom       Zoom level used for the scale benchmark
    --seed       Random seed, for repeatable graphs
"""

import argparse
import random
import time
from datetime import date, timedelta

from gantt_engine.logging_config import setup_logging
from gantt_engine.models import DateRange
from gantt_engine.services.scale import ScaleEngine
from gantt_engine.services.schedule import ScheduleModel


def generate_dag(num_nodes: int = 500, start_date: date = date(2025, 1, 1)) -> tuple[list[dict], list[dict]]:
    """
    Generate task and link records.

    Strategy:
    - Create tasks in "waves", each under its own phase parent
    - Each task depends on 1-3 tasks from the previous few waves
    - 10% of tasks are milestones

    Returns:
        Tuple of (tasks, links)
    """
    tasks = []
    links = []
    seen = set()

    num_waves = max(10, num_nodes // 50)  # ~50 tasks per wave
    tasks_per_wave = max(1, num_nodes // num_waves)
    created = 0

    print(f"Generating {num_nodes} tasks in {num_waves} waves...")

    waves = []
    for wave in range(num_waves):
        phase_id = f"P{wave:02d}"
        tasks.append({"id": phase_id, "name": f"Phase {wave}", "is_open": wave == 0})

        wave_size = tasks_per_wave if wave < num_waves - 1 else num_nodes - created
        wave_ids = []
        for i in range(wave_size):
            task_id = f"W{wave:02d}-{i:03d}"
            is_milestone = random.random() < 0.1
            tasks.append({
                "id": task_id,
                "name": f"Task W{wave:02d}-{i:03d}",
                "parent": phase_id,
                "kind": "milestone" if is_milestone else "task",
                "start_date": start_date,  # Pushed into place by the cascade
                "duration": 1 if is_milestone else random.randint(1, 10),
                "progress": random.randint(0, 100),
            })
            wave_ids.append(task_id)
        created += wave_size
        waves.append(wave_ids)

        if wave == 0:
            continue
        available_waves = [w for w in range(max(0, wave - 3), wave) if waves[w]]
        for task_id in wave_ids:
            for _ in range(random.randint(1, 3)):
                source = random.choice(waves[random.choice(available_waves)])
                if (source, task_id) in seen:
                    continue
                seen.add((source, task_id))
                links.append({"source": source, "target": task_id, "type": "FS"})

    return tasks, links


def timed(label: str, fn, *args, **kwargs):
    start_time = time.perf_counter()
    result = fn(*args, **kwargs)
    print(f"{label}: {(time.perf_counter() - start_time) * 1000:.2f}ms")
    return result


def print_stats(model: ScheduleModel) -> None:
    tree, graph = model.tree, model.links.as_graph()
    leaves = [task_id for task_id in tree.ids() if tree.is_leaf(task_id)]
    roots = [task_id for task_id in leaves if task_id not in graph or graph.in_degree(task_id) == 0]
    num_links = len(model.links)

    print("\n=== Schedule Statistics ===")
    print(f"Tasks:         {len(tree)} ({len(leaves)} leaves)")
    print(f"Links:         {num_links}")
    print(f"Linked roots:  {len(roots)} (no predecessors)")
    print(f"Avg links/task: {num_links / len(leaves) if leaves else 0:.2f}")


def main():
    parser = argparse.ArgumentParser(description="Generate a large schedule and time the engine on it")
    parser.add_argument("--nodes", type=int, default=500, help="Number of tasks to create")
    parser.add_argument("--zoom", type=str, default="day", help="Zoom level for the scale benchmark")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Engine log level")

    args = parser.parse_args()
    setup_logging(level=args.log_level)
    if args.seed is not None:
        random.seed(args.seed)

    print("=== Gantt Engine Seed Script ===")
    tasks, links = timed("Generation time", generate_dag, args.nodes)

    model = ScheduleModel()
    report = timed("Load time", model.load, tasks, links)
    if not report.valid:
        print(f"Validation problems: {len(report.tasks.errors) + len(report.dangling_links)}")

    result = timed("Full cascade time", model.reschedule)
    print(f"Shifted {len(result.updates)} tasks")
    print_stats(model)

    first = model.tree.roots()[0]
    span = model.tree.get_effective_dates(first.id)
    date_range = DateRange(span.start, span.start + timedelta(days=365))
    engine = ScaleEngine(zoom_level=args.zoom)
    buckets = timed(f"Scale build ({args.zoom}, 1 year)", engine.build_scales, date_range)
    print(f"Buckets per row: {[len(row) for row in buckets]}")

    leaf = model.tree.children_ids(first.id)[0]
    leaf_start = model.tree.get(leaf).start_date
    print(f"\n=== Benchmark: moving {leaf} by 7 days ===")
    timed("Update + cascade time", model.update_task, leaf, {"start_date": leaf_start + timedelta(days=7)})

    print("\n=== Seeding Complete ===")


if __name__ == "__main__":
    main()
