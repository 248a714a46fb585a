"""Application service layer for watched jobs."""
from __future__ import annotations

from collections import Counter
from typing import Any, Mapping

from jobwatch.application.tracker import JobApi, JobTracker
from jobwatch.core.errors import JobWatchError
from jobwatch.core.features import get_feature, load_features
from jobwatch.core.logging import get_logger
from jobwatch.core.schema import FeatureConfig, JobView
from jobwatch.domain import JobStatus
from jobwatch.infrastructure import InMemoryWatchRepository, SessionProvider, WatchRepository, get_job_api
from jobwatch.workers.watchers import PollingWorker, get_polling_worker

logger = get_logger(__name__)

DEFAULT_MAX_FINISHED = 200


class WatchNotFoundError(JobWatchError):
    """Raised when a watch id is not open."""


class WatchService:
    """Coordinates watch-related use cases."""

    def __init__(
        self,
        repository: WatchRepository,
        worker: PollingWorker,
        *,
        features: Mapping[str, FeatureConfig] | None = None,
        api: JobApi | None = None,
        upgrade_url: str | None = None,
        max_finished: int = DEFAULT_MAX_FINISHED,
    ) -> None:
        self._repository = repository
        self._worker = worker
        self._features = dict(features) if features is not None else None
        self._api = api
        self._upgrade_url = upgrade_url
        self._max_finished = max_finished

    def configure(
        self,
        *,
        features: Mapping[str, FeatureConfig] | None = None,
        api: JobApi | None = None,
        upgrade_url: str | None = None,
        max_finished: int | None = None,
    ) -> None:
        if features is not None:
            self._features = dict(features)
        if api is not None:
            self._api = api
        if upgrade_url is not None:
            self._upgrade_url = upgrade_url
        if max_finished is not None:
            self._max_finished = max_finished

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @property
    def features(self) -> dict[str, FeatureConfig]:
        if self._features is None:
            self._features = load_features()
        return self._features

    def _require_api(self) -> JobApi:
        api = self._api or get_job_api()
        if api is None:
            raise JobWatchError("job API client is not configured")
        return api

    def _require_tracker(self, watch_id: str) -> JobTracker:
        tracker = self._repository.get(watch_id)
        if tracker is None:
            raise WatchNotFoundError(f"watch not found: {watch_id}")
        return tracker

    def _new_tracker(self, feature_name: str, session: SessionProvider) -> JobTracker:
        feature = get_feature(self.features, feature_name)
        watch_id = self._repository.next_watch_id()
        tracker = JobTracker(
            feature,
            self._require_api(),
            session,
            watch_id=watch_id,
            upgrade_url=self._upgrade_url,
        )
        self._repository.add(watch_id, tracker)
        logger.info("watch_opened", watch_id=watch_id, feature=feature_name)
        return tracker

    def _keep_or_discard(self, tracker: JobTracker) -> JobView:
        """Start polling ``tracker``, or drop it when nothing reached the backend."""

        watch_id = str(tracker.watch_id)
        if tracker.job.status is JobStatus.IDLE:
            self._repository.remove(watch_id)
            view = tracker.view()
            logger.info("watch_discarded", watch_id=watch_id, state=view.state)
            return view.model_copy(update={"watch_id": None})

        self._worker.start(watch_id, tracker)
        self._evict_finished()
        return tracker.view()

    def _evict_finished(self) -> None:
        finished = [
            (watch_id, tracker)
            for watch_id, tracker in self._repository.items()
            if not tracker.needs_polling and not self._worker.is_running(watch_id)
        ]
        excess = len(finished) - self._max_finished
        for watch_id, tracker in finished[: max(excess, 0)]:
            self._repository.remove(watch_id)
            tracker.close()
            logger.info("watch_evicted", watch_id=watch_id, status=tracker.job.status.value)

    # ------------------------------------------------------------------
    # watch lifecycle
    # ------------------------------------------------------------------
    def list_features(self) -> list[dict[str, Any]]:
        return [
            {
                "name": feature.name,
                "label": feature.label,
                "poll_interval": feature.poll_interval,
                "max_retries": feature.max_retries,
                "required": [rule.field for rule in feature.validation],
            }
            for feature in self.features.values()
        ]

    async def open_watch(
        self, feature_name: str, params: Mapping[str, Any] | None, session: SessionProvider
    ) -> JobView:
        tracker = self._new_tracker(feature_name, session)
        await tracker.submit(params)
        return self._keep_or_discard(tracker)

    async def attach_watch(self, feature_name: str, job_id: str, session: SessionProvider) -> JobView:
        tracker = self._new_tracker(feature_name, session)
        tracker.attach(job_id)
        return self._keep_or_discard(tracker)

    def get_view(self, watch_id: str) -> JobView:
        return self._require_tracker(watch_id).view()

    async def retry_watch(self, watch_id: str) -> JobView:
        tracker = self._require_tracker(watch_id)
        await tracker.retry()
        self._worker.start(watch_id, tracker)
        return tracker.view()

    async def close_watch(self, watch_id: str) -> JobView:
        tracker = self._repository.remove(watch_id)
        if tracker is None:
            raise WatchNotFoundError(f"watch not found: {watch_id}")
        tracker.close()
        await self._worker.stop(watch_id)
        logger.info("watch_closed", watch_id=watch_id, status=tracker.job.status.value)
        return tracker.view()

    def list_watches(self) -> list[JobView]:
        return [tracker.view() for _, tracker in self._repository.items()]

    def queue_summary(self) -> dict[str, Any]:
        views = self.list_watches()
        by_state = Counter(view.state for view in views)
        by_feature = Counter(view.feature for view in views)
        return {
            "total": len(views),
            "polling": len(self._worker.running()),
            "by_state": dict(by_state),
            "by_feature": dict(by_feature),
            "in_progress": by_state.get("in_progress", 0),
            "completed": by_state.get("completed", 0),
            "failed": by_state.get("failed", 0),
        }

    async def shutdown(self) -> None:
        for _, tracker in self._repository.items():
            tracker.close()
        await self._worker.shutdown()

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._worker.cancel_all()
        self._repository.reset()
        self._features = None
        self._api = None
        self._upgrade_url = None
        self._max_finished = DEFAULT_MAX_FINISHED


_repository = InMemoryWatchRepository()
_service = WatchService(_repository, get_polling_worker())


def get_watch_service() -> WatchService:
    """Return the singleton watch service for the process."""

    return _service


def reset_watch_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
