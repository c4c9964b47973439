import asyncio
import logging
import time
from typing import Optional

from aiokafka import AIOKafkaProducer

from .config import settings

_logger = logging.getLogger(__name__)

_producer: Optional[AIOKafkaProducer] = None
_producer_lock = asyncio.Lock()
# Monotonic deadline before which no new start is attempted after a failed one
_retry_after: float = 0.0


class ProducerUnavailable(RuntimeError):
    pass


async def get_producer() -> AIOKafkaProducer:
    global _producer, _retry_after
    if _producer is None:
        async with _producer_lock:
            if _producer is None:
                if time.monotonic() < _retry_after:
                    raise ProducerUnavailable("Kafka producer start failed recently, waiting for cooldown")
                attempts = max(1, settings.KAFKA_START_ATTEMPTS)
                backoff = 1.0
                last_exc: Optional[BaseException] = None
                for attempt in range(attempts):
                    try:
                        producer = AIOKafkaProducer(bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS)
                        await producer.start()
                        _producer = producer
                        _logger.info("Kafka producer started | servers=%s", settings.KAFKA_BOOTSTRAP_SERVERS)
                        break
                    except Exception as e:
                        last_exc = e
                        _producer = None
                        _logger.warning("Kafka producer start failed | attempt=%s err=%s", attempt + 1, e)
                        if attempt + 1 < attempts:
                            await asyncio.sleep(backoff)
                            backoff = min(backoff * 2, 30.0)
                if _producer is None:
                    _retry_after = time.monotonic() + settings.KAFKA_RETRY_COOLDOWN
                    # Propagate the last error after retries
                    raise last_exc or ProducerUnavailable("Kafka producer start failed")
                _retry_after = 0.0
    return _producer


async def close_producer() -> None:
    global _producer
    if _producer is not None:
        await _producer.stop()
        _producer = None
