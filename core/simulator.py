"""
Simulation Engine

single logical timeline: deferred continuations fire in (time, registration) order,
cooperatively, one at a time
"""

import heapq
import itertools
import logging
import abc
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import numpy as np

logger = logging.getLogger(__name__)

# wall-clock instant of simulated time 0
SIM_EPOCH = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class SimulationEntity(abc.ABC):
    """simulation entity"""

    def __init__(self, name: str):
        self.name = name
        self.current_tick = 0
        self.debug_mode = False

    def update(self, tick: float):
        """called whenever the engine clock moves"""
        self.current_tick = tick

    def reset(self):
        """reset entity state"""
        self.current_tick = 0

    def setmode(self, mode: str):
        """
        mode: 'debug' 开启时间线输出，其他关闭
        """
        self.debug_mode = mode == "debug"

    def debug_log(self, msg: str):
        if self.debug_mode:
            logger.debug(f"[TICK {self.current_tick:g}][{self.name}] {msg}")

    def __str__(self):
        return f"SimulationEntity({self.name})"


class Timer:
    """one scheduled continuation"""

    __slots__ = ("fire_time", "callback", "task", "interval", "cancelled")

    def __init__(self, fire_time: float, callback: Callable[[], None],
                 task: Optional["Task"] = None, interval: Optional[float] = None):
        self.fire_time = fire_time
        self.callback = callback
        self.task = task
        self.interval = interval
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        return f"Timer(t={self.fire_time}, task={self.task.name if self.task else None})"


class Task:
    """
    a multi-step exchange: owns every continuation it registers, so the whole
    chain can be cancelled at once
    """

    def __init__(self, engine: "SimulationEngine", name: str):
        self.engine = engine
        self.name = name
        self.timers: list[Timer] = []
        self.children: list[Task] = []
        self.cancelled = False

    def schedule(self, delay: float, callback: Callable[[], None]) -> Optional[Timer]:
        if self.cancelled:
            return None
        return self.engine.schedule(delay, callback, task=self)

    def every(self, interval: float, callback: Callable[[], None]) -> Optional[Timer]:
        if self.cancelled:
            return None
        return self.engine.every(interval, callback, task=self)

    def adopt(self, child: "Task") -> "Task":
        """
        make `child` part of this exchange: cancelling this task cancels it too
        """
        self.children = [c for c in self.children if c.pending and not c.cancelled]
        if self.cancelled:
            child.cancel()
        else:
            self.children.append(child)
        return child

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        for timer in self.timers:
            timer.cancel()
        self.timers.clear()
        for child in self.children:
            child.cancel()
        self.children.clear()
        self.engine.discard_cancelled()
        logger.debug(f"task {self.name} cancelled")

    @property
    def pending(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)

    def _forget(self, timer: Timer):
        try:
            self.timers.remove(timer)
        except ValueError:
            pass


class SimulationEngine:
    """仿真引擎 - 离散事件驱动"""

    def __init__(self, seed: Optional[int] = None, rng: Optional[np.random.Generator] = None):
        """
        Args:
            seed: seed for the default numpy generator
            rng: generator to use instead (takes precedence over seed)
        """
        self.seed = seed
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng(seed)
        self.now: float = 0
        self.queue: list[tuple[float, int, Timer]] = []
        self.ids = itertools.count()
        self.entities: list[SimulationEntity] = []
        self.tasks: set[Task] = set()
        self.running = False

        # 统计信息
        self.stats = {
            "fired": 0,
            "cancelled": 0,
        }

    def register_entity(self, entity: SimulationEntity):
        """注册一个实体到仿真引擎"""
        self.entities.append(entity)

    def task(self, name: str) -> Task:
        task = Task(self, name)
        self.tasks.add(task)
        return task

    def schedule(self, delay: float, callback: Callable[[], None],
                 task: Optional[Task] = None) -> Timer:
        """
        register callback to run `delay` units from now

        Returns:
            Timer: handle that can be cancelled before it fires
        """
        timer = Timer(self.now + max(0, delay), callback, task=task)
        self._push(timer)
        return timer

    def every(self, interval: float, callback: Callable[[], None],
              task: Optional[Task] = None) -> Timer:
        """recurring continuation, first firing one interval from now"""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        timer = Timer(self.now + interval, callback, task=task, interval=interval)
        self._push(timer)
        return timer

    def _push(self, timer: Timer):
        if timer.task is not None:
            timer.task.timers.append(timer)
            self.tasks.add(timer.task)
        heapq.heappush(self.queue, (timer.fire_time, next(self.ids), timer))

    def discard_cancelled(self):
        """drop cancelled timers from the queue so they can never fire"""
        before = len(self.queue)
        self.queue = [item for item in self.queue if not item[2].cancelled]
        heapq.heapify(self.queue)
        self.stats["cancelled"] += before - len(self.queue)

    def _advance_clock(self, now: float):
        self.now = now
        for entity in self.entities:
            entity.update(now)

    def _peek_time(self) -> Optional[float]:
        while self.queue and self.queue[0][2].cancelled:
            heapq.heappop(self.queue)
        return self.queue[0][0] if self.queue else None

    def step(self) -> bool:
        """fire the next due continuation, False when the queue is empty"""
        while self.queue:
            fire_time, _, timer = heapq.heappop(self.queue)
            if timer.cancelled:
                continue
            self._advance_clock(fire_time)
            if timer.task is not None:
                timer.task._forget(timer)
            if timer.interval is not None:
                timer.fire_time = fire_time + timer.interval
                self._push(timer)
            self.stats["fired"] += 1
            timer.callback()
            if timer.task is not None and not timer.task.timers:
                # chain finished
                self.tasks.discard(timer.task)
            return True
        return False

    def run(self, duration: float):
        """
        运行仿真

        Args:
            duration: simulated units to advance; every continuation due
                      within the horizon fires
        """
        self.running = True
        horizon = self.now + duration
        while True:
            next_time = self._peek_time()
            if next_time is None or next_time > horizon:
                break
            self.step()
        self._advance_clock(horizon)
        self.running = False

    def run_until_idle(self, limit: Optional[float] = None):
        """
        drain the queue; recurring timers keep it non-empty, so pass `limit`
        (units from now) when any are active
        """
        if limit is not None:
            self.run(limit)
            return
        self.running = True
        while self.step():
            pass
        self.running = False

    def timestamp(self) -> str:
        """ISO-8601 wall-clock text of the current simulated instant"""
        instant = SIM_EPOCH + timedelta(milliseconds=self.now)
        return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self.queue if not timer.cancelled)

    def reset(self):
        """重置仿真"""
        for task in list(self.tasks):
            task.cancel()
        self.tasks.clear()
        for _, _, timer in self.queue:
            timer.cancel()
        self.queue.clear()
        self.ids = itertools.count()
        self.now = 0
        for entity in self.entities:
            entity.reset()
        logger.debug("simulation reset")
