import structlog

logger = structlog.get_logger()

class BaseWorker:
    def __init__(self, name: str):
        self.name = name
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        logger.info("worker_started", worker=self.name)
        await self.run()

    async def run(self):
        raise NotImplementedError

    def _shutdown(self):
        logger.info("worker_shutting_down", worker=self.name)
        self._running = False

    def stop(self) -> None:
        self._shutdown()
