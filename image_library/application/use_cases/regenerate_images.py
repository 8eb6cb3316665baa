from __future__ import annotations

import dataclasses
import itertools
import logging
import threading
from concurrent.futures import Future
from enum import Enum
from functools import partial

from image_library.application.registries import ImageContextRegistry
from image_library.application.use_cases.generate_breakpoint_version import GenerateBreakpointVersionUseCase
from image_library.application.use_cases.generate_responsive_versions import GenerateResponsiveVersionsUseCase
from image_library.application.use_cases.image_files import ImageFiles
from image_library.domain.entities.crop_data import normalize_crop_data
from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.exceptions import TaskFailure
from image_library.infrastructure.queue.task_queue import ChainResult, TaskQueue

logger = logging.getLogger(__name__)

_TRIGGER_FIELDS = frozenset({"context_configuration_hash", "crop_data"})


class AssetState(str, Enum):
    ABSENT = "absent"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class RegenerationController:
    """Keeps the generated files of derived images in step with their records.

    Registered as an observer on the image repository: every save normalizes the
    crop data and stamps the current context hash, creation generates, an update
    regenerates only when the hash or the crop data changed, and deletion removes
    the image's file tree.
    """

    def __init__(
        self,
        files: ImageFiles,
        contexts: ImageContextRegistry,
        queue: TaskQueue,
        breakpoint_version: GenerateBreakpointVersionUseCase,
        responsive_versions: GenerateResponsiveVersionsUseCase,
    ) -> None:
        self.files = files
        self.contexts = contexts
        self.queue = queue
        self.breakpoint_version = breakpoint_version
        self.responsive_versions = responsive_versions
        self._states: dict[str, AssetState] = {}
        self._pending: dict[str, Future] = {}
        # latest dispatch per image; older chains may not change the state
        self._dispatches = itertools.count(1)
        self._current: dict[str, int] = {}
        self._lock = threading.Lock()

    # --------- repository hooks ---------
    def saving(self, image: DerivedImage) -> DerivedImage:
        context = self.contexts.get(image.context_key)
        disk = image.disk
        if disk is None:
            disk = self.files.source(image.source_image_id).disk
        return dataclasses.replace(
            image,
            crop_data=normalize_crop_data(context.breakpoints.keys(), image.crop_data),
            context_configuration_hash=context.get_configuration_hash(),
            disk=disk,
        )

    def created(self, image: DerivedImage) -> None:
        self.generate(image)

    def updated(self, image: DerivedImage, changed_fields: set[str]) -> None:
        if changed_fields & _TRIGGER_FIELDS:
            self.generate(image)

    def deleting(self, image: DerivedImage) -> None:
        self._delete_files(image)
        with self._lock:
            self._states.pop(image.id, None)
            self._pending.pop(image.id, None)
            self._current.pop(image.id, None)

    # --------- commands ---------
    def generate(self, image: DerivedImage, delete_existing: bool = True) -> Future:
        """Dispatch the crop batch followed by the responsive-width batch."""
        if delete_existing:
            self._delete_files(image)
        context = self.contexts.get(image.context_key)
        breakpoints = context.breakpoints.sorted()

        stages = [
            self.queue.batch(
                [
                    self.queue.task(
                        f"generate-image-version:{image.id}:{bp.key}",
                        partial(self.breakpoint_version.execute, image.id, bp),
                    )
                    for bp in breakpoints
                ],
                name=f"image-versions:{image.id}",
            )
        ]
        if context.get_generate_responsive_versions():
            stages.append(
                self.queue.batch(
                    [
                        self.queue.task(
                            f"generate-responsive-image-versions:{image.id}:{bp.key}",
                            partial(self.responsive_versions.execute, image.id, bp),
                        )
                        for bp in breakpoints
                    ],
                    name=f"responsive-image-versions:{image.id}",
                )
            )

        with self._lock:
            token = next(self._dispatches)
            self._current[image.id] = token
            self._states[image.id] = AssetState.GENERATING
        logger.info("Generating image %s (%s) with %d stage(s)", image.id, image.context_key, len(stages))
        future = self.queue.chain(
            stages,
            on_complete=partial(self._finished, image.id, token),
            on_failure=partial(self._failed, image.id),
        )
        with self._lock:
            self._pending[image.id] = future
        return future

    def regenerate(self, image_id: str, force: bool = False, delete_stale: bool = False) -> bool:
        """Rebuild one image's files.

        Without ``force`` this only happens when the stored configuration hash is out
        of date; the record is re-saved and the update hook does the work. Returns
        whether a regeneration was dispatched.
        """
        image = self.files.image(image_id)
        if force:
            self.generate(image, delete_existing=delete_stale)
            return True
        current = self.contexts.get(image.context_key).get_configuration_hash()
        if image.context_configuration_hash == current:
            return False
        self.files.image_repo.update(image.id, context_configuration_hash=current)
        return True

    def regenerate_all(self, context_key: str | None = None, only_changed: bool = False) -> int:
        filters = {"context_key": context_key} if context_key is not None else {}
        count = 0
        for image in self.files.image_repo.list(**filters):
            if only_changed:
                count += self.regenerate(image.id)
            else:
                count += self.regenerate(image.id, force=True, delete_stale=True)
        logger.info("Regenerated %d image(s)", count)
        return count

    def state(self, image_id: str) -> AssetState:
        with self._lock:
            return self._states.get(image_id, AssetState.ABSENT)

    def wait(self, image_id: str, timeout: float | None = None) -> AssetState:
        with self._lock:
            future = self._pending.get(image_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.state(image_id)

    # --------- internals ---------
    def _delete_files(self, image: DerivedImage) -> None:
        source = self.files.source(image.source_image_id)
        self.files.disk_for(source, image).delete_tree(self.files.layout.derived_base(source, image))

    def _finished(self, image_id: str, token: int, result: ChainResult) -> None:
        with self._lock:
            if self._current.get(image_id) != token:
                logger.debug("Ignoring superseded generation %d of image %s", token, image_id)
                return
            self._states[image_id] = AssetState.READY if result.completed else AssetState.FAILED
        if result.completed:
            logger.info("Image %s ready", image_id)

    def _failed(self, image_id: str, failure: TaskFailure) -> None:
        logger.warning("Image %s failed in %s: %s", image_id, failure.task_name, failure.cause)
