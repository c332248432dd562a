import asyncio

import pytest


def test_track_yields_items(console):
    items = list(range(5))
    seen = []
    for item in console.track(items, format='{value}/{max}'):
        seen.append(item)
    assert seen == items
    assert console.widgets == ()


def test_track_steps_after_each_item(console):
    values = []
    for _ in console.track(['a', 'b', 'c']):
        bar, = console.widgets
        values.append(bar.value)
    assert values == [0, 1, 2]


def test_track_stops_bar_when_abandoned(console):
    for item in console.track(range(10), max=10):
        if item == 3:
            break
    assert console.widgets == ()


def test_track_requires_max_for_unsized_iterables(console):
    with pytest.raises(ValueError, match='max is required'):
        next(console.track(x for x in range(3)))


def test_track_empty_iterable(console):
    assert list(console.track([])) == []
    assert console.widgets == ()


def test_with_spinner_returns_callback_result(console):
    result = console.with_spinner('loading', lambda spinner: spinner.text.upper())
    assert result == 'LOADING'
    assert len(console.widgets) == 1


def test_with_progress_hands_over_bar(console):
    def work(bar):
        bar.step(4)
        return bar

    bar = console.with_progress(work, max=8, width=4)
    assert bar.render() == '██  '


def test_spinning_logs_success(console, drain):
    with console.spinning('Downloading', success='Downloaded') as spinner:
        assert console.contains(spinner)
    assert console.widgets == ()
    assert '[✓] Downloaded' in drain()


def test_spinning_logs_error_and_reraises(console, drain):
    with pytest.raises(RuntimeError):
        with console.spinning('Downloading', error='Download failed'):
            raise RuntimeError('network down')
    assert console.widgets == ()
    assert '[✗] Download failed' in drain()


def test_spinning_leaves_finished_spinner_alone(console, drain):
    with console.spinning('Working', success='never shown') as spinner:
        spinner.success('finished early')
    output = drain()
    assert '[✓] finished early' in output
    assert 'never shown' not in output


def test_wait_shows_spinner_until_done(console, drain):
    async def compute():
        await asyncio.sleep(0)
        assert len(console.widgets) == 1
        return 42

    result = asyncio.run(console.wait(compute(), 'Waiting...', success='Done waiting!'))
    assert result == 42
    assert '[✓] Done waiting!' in drain()


def test_wait_reraises(console, drain):
    async def fail():
        raise KeyError('missing')

    with pytest.raises(KeyError):
        asyncio.run(console.wait(fail(), 'Waiting...', error='Failed to wait?'))
    assert '[✗] Failed to wait?' in drain()
