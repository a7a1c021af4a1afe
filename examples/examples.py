"""Examples demonstrating stacked in-place progress bars with styles and gradients"""

import sys
import time
import random
import threading

from rowbar import (
    track,
    clear_screen,
    ProgressBar,
    FillStyle,
    EmptyStyle,
    Color,
)


def example_1():
    print("=== Example 1: Simulated download ===")

    total_size = 50_000
    downloaded = 0

    with ProgressBar("Downloading bar 1", 40, total_size) as bar:
        while downloaded < total_size:
            downloaded = min(downloaded + 700, total_size)
            if bar.tick(downloaded):
                break
            time.sleep(0.08)


def example_2():
    print("=== Example 2: Styles and colors ===")

    styles = [
        (FillStyle.SOLID, EmptyStyle.SOLID, Color.CYAN, Color.GRAY),
        (FillStyle.HASH, EmptyStyle.DASH, Color.GREEN, Color.GRAY),
        (FillStyle.EQUAL, EmptyStyle.SPACE, Color.YELLOW, Color.RESET),
        (FillStyle.THIN, EmptyStyle.THIN, Color.PINK, Color.BLUE),
    ]

    bars = []
    for fill, empty, fill_color, empty_color in styles:
        bar = ProgressBar(f"{fill.value:>6}/{empty.value:<6}", 30, 200)
        bar.set_style(fill, empty)
        bar.set_colors(fill_color, empty_color)
        bars.append(bar)

    try:
        for step in range(0, 200 + 1, 4):
            if any([bar.tick(step) for bar in bars]):
                break
            time.sleep(0.03)
    finally:
        for bar in bars:
            bar.close()


def example_3():
    print("=== Example 3: Gradients ===")

    gradients = [
        (Color.RED, Color.GREEN),
        (Color.BLUE, Color.PINK),
        (Color.YELLOW, Color.CYAN),
    ]

    bars = []
    for start, end in gradients:
        bar = ProgressBar(f"{start.value} -> {end.value}", 40, 1000)
        bar.set_style(FillStyle.SOLID, EmptyStyle.SPACE)
        bar.set_gradient(start, end)
        bars.append(bar)

    try:
        for step in range(0, 1000 + 1, 10):
            if any([bar.tick(step) for bar in bars]):
                break
            time.sleep(0.02)
    finally:
        for bar in bars:
            bar.close()


def example_4():
    print("=== Example 4: Bars ticked from threads ===")

    def worker(bar: ProgressBar, chunk: int):
        transferred = 0
        while transferred < bar.target_total:
            transferred = min(transferred + chunk, bar.target_total)
            if bar.tick(transferred):
                return
            time.sleep(random.uniform(0.01, 0.05))

    bars = [ProgressBar(f"Transfer {i}", 40, 4 * 1024 * 1024) for i in range(1, 4 + 1)]
    threads = [
        threading.Thread(target=worker, args=(bar, random.randint(16, 64) * 1024))
        for bar in bars
    ]

    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        for bar in bars:
            bar.close()


def example_5():
    print("=== Example 5: Wrapping an iterable ===")

    for _ in track(range(1, 100 + 1), "Processing items"):
        time.sleep(0.02)


if __name__ == "__main__":
    import logging

    logging.basicConfig(level=logging.DEBUG, filename="examples.log")

    clear_screen(sys.stdout)

    for i in range(1, 5 + 1):
        if i != 1:
            time.sleep(1)
        globals()[f"example_{i}"]()
