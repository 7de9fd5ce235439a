import logging
import re
from typing import List

from . import config
from .distributions import sample, sample_from_u
from .models import (
    Err,
    GanttBlock,
    Ok,
    QueueRequest,
    QueueResult,
    QueueRow,
    Refusal,
    Result,
    StreamSpec,
)
from .prng import Mulberry32, derive_seed

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"-?\d+[.,]?\d*")


def parse_uniform_list(text: str) -> List[float]:
    """Pull every number out of pasted text; comma decimals are accepted."""
    return [float(t.replace(",", ".")) for t in _NUMBER.findall(text or "")]


class InsufficientValues(Exception):
    def __init__(self, stream: str, expected: int, received: int):
        super().__init__(f"{stream}: {expected} values required, {received} received")
        self.stream = stream
        self.expected = expected
        self.received = received


def _durations(stream: StreamSpec, name: str, n: int, seed: int) -> List[float]:
    if stream.mode == "manual_u":
        if len(stream.uniforms) < n:
            raise InsufficientValues(name, n, len(stream.uniforms))
        return [max(0.0, sample_from_u(u, stream.distribution)) for u in stream.uniforms[:n]]
    if stream.mode == "values":
        if len(stream.values) < n:
            raise InsufficientValues(name, n, len(stream.values))
        return [max(0.0, v) for v in stream.values[:n]]
    if stream.mode == "rng":
        rng = Mulberry32(seed)
        return [max(0.0, sample(stream.distribution, rng)) for _ in range(n)]
    raise ValueError(f"Unknown stream mode: {stream.mode}")


def simulate(req: QueueRequest) -> Result[QueueResult]:
    N = min(max(1, int(req.n_entities)), config.MAX_ENTITIES)
    c = min(max(1, int(req.servers)), config.MAX_SERVERS)

    try:
        inters = _durations(
            req.arrival, "arrival", N,
            derive_seed(req.seed, req.run_id, config.ARRIVAL_SEED_STRIDE),
        )
        services = _durations(
            req.service, "service", N,
            derive_seed(req.seed, req.run_id, config.SERVICE_SEED_STRIDE, config.SERVICE_SEED_OFFSET),
        )
    except InsufficientValues as exc:
        logger.warning("Queue run refused: %s", exc)
        return Err(Refusal(
            code="insufficient_values",
            message=str(exc),
            expected=exc.expected,
            received=exc.received,
            stream=exc.stream,
        ))

    server_available = [0.0] * c
    busy = [0.0] * c
    rows: List[QueueRow] = []
    gantt: List[GanttBlock] = []

    arrival_time = 0.0
    for i in range(N):
        arrival_time += inters[i]

        # pick earliest available server, lowest index on ties
        server_idx = min(range(c), key=lambda k: server_available[k])

        start = max(arrival_time, server_available[server_idx])
        end = start + services[i]
        server_available[server_idx] = end
        busy[server_idx] += services[i]

        rows.append(QueueRow(
            entity_id=i + 1,
            server=server_idx + 1,
            inter_arrival=inters[i],
            arrival=arrival_time,
            start=start,
            service=services[i],
            end=end,
            wait=max(0.0, start - arrival_time),
            system_time=end - arrival_time,
        ))
        gantt.append(GanttBlock(server_id=server_idx + 1, entity_id=i + 1, start=start, end=end))

    makespan = max(r.end for r in rows) - rows[0].arrival
    waited = sum(1 for r in rows if r.wait > config.WAIT_EPSILON)
    logger.debug("Queue run N=%s servers=%s makespan=%.4f", N, c, makespan)

    return Ok(QueueResult(
        rows=rows,
        gantt=gantt,
        mean_wait=sum(r.wait for r in rows) / N,
        mean_service=sum(r.service for r in rows) / N,
        mean_system_time=sum(r.system_time for r in rows) / N,
        waited_pct=waited / N * 100.0,
        utilization=[(b / makespan * 100.0) if makespan > 0 else 0.0 for b in busy],
        makespan=makespan,
    ))
