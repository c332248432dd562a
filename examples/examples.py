"""Examples demonstrating log lines, spinners and progress bars"""

import asyncio
import random
import time

from logbar import Console, SPINNER_STYLES, PROGRESS_BAR_STYLES


def example_0(console: Console):
    print("=== Example 0: Log levels ===")

    filename = "Hello.txt"
    console.info("starting to download {}", filename)
    console.warn("deprecation warning: --fast option was removed")
    console.error("download failed")
    console.success("download completed")
    console.debug("Hello, World!", {"retries": 3, "mirrors": ["eu", "us"]})
    console.trace("trace this!!")
    console.info()


def example_1(console: Console):
    print("=== Example 1: Every spinner and bar style at once ===")

    spinners = [console.spinner(f"loading... {i + 1}", style=style)
                for i, style in enumerate(SPINNER_STYLES)]

    bars = [console.progress(max=10, style=style, format="{spinner} {progress}% {bar} ETA: {eta}")
            for style in PROGRESS_BAR_STYLES]

    for i in range(1, 10 + 1):
        for bar in bars:
            bar.update(i)
        time.sleep(0.3)

    for bar in bars:
        bar.stop()
    for i, spinner in enumerate(spinners):
        spinner.success(f"success :-) {i + 1}")


def example_2(console: Console):
    print("=== Example 2: Logging while a bar is running ===")

    for i in console.track(range(1, 40 + 1), format="{bar} {value}/{max} {eta_rounded}", style="block"):
        if i % 10 == 0:
            console.info("checkpoint {}", i)
        time.sleep(random.uniform(0.02, 0.1))


def example_3(console: Console):
    print("=== Example 3: Spinner context ===")

    with console.spinning("Compiling...", success="Compiled", style="geometry"):
        time.sleep(2)

    try:
        with console.spinning("Uploading...", error="Upload failed", style="classic"):
            time.sleep(1)
            raise ConnectionError("remote closed the connection")
    except ConnectionError as e:
        console.debug("caught {}", e)


def example_4(console: Console):
    print("=== Example 4: Awaiting under a spinner ===")

    asyncio.run(console.wait(asyncio.sleep(3),
                             "Waiting...",
                             success="Done waiting!",
                             error="Failed to wait?",
                             style="sus"))


if __name__ == '__main__':
    with Console(log_level='trace') as console:
        example_0(console)
        example_1(console)
        example_2(console)
        example_3(console)
        example_4(console)
