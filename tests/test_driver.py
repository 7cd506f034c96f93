"""Tests for the multi-resolution driver and an end-to-end scheduler run."""

from pathlib import Path
from typing import List

import numpy as np
import pytest
import SimpleITK as sitk

from resmask.config import Configuration
from resmask.masks.mask import MaskRole
from resmask.metric.base import MaskedMetricBase
from resmask.registration.driver import MultiResolutionDriver
from resmask.registration.hooks import LifecycleError, RegistrationHooks
from resmask.registration.scheduler import MaskLoadError, ResolutionErosionScheduler


class RecordingComponent(RegistrationHooks):
    """Component recording the order of hook calls."""

    def __init__(self, driver: MultiResolutionDriver, status: int = 0) -> None:
        self.driver = driver
        self.status = status
        self.calls: List[str] = []

    def before_all(self) -> int:
        self.calls.append("before_all")
        return self.status

    def before_registration(self) -> None:
        self.calls.append("before_registration")

    def initialize(self) -> None:
        self.calls.append("initialize")

    def before_each_resolution(self) -> None:
        self.calls.append(f"level{self.driver.get_current_level()}")

    def finalize(self) -> None:
        self.calls.append("finalize")


class FailingComponent(RecordingComponent):
    """Component whose registration setup and cleanup both fail."""

    def before_registration(self) -> None:
        super().before_registration()
        raise ValueError("boom")

    def finalize(self) -> None:
        super().finalize()
        raise RuntimeError("cleanup failed")


def _write_cube(path: Path, size: int = 40, margin: int = 5) -> Path:
    arr = np.zeros((size, size, size), dtype=np.uint8)
    arr[margin:size - margin, margin:size - margin, margin:size - margin] = 1
    sitk.WriteImage(sitk.GetImageFromArray(arr), str(path))
    return path


class TestMultiResolutionDriver:
    def test_hook_order(self) -> None:
        driver = MultiResolutionDriver(number_of_resolutions=3, number_of_parameters=6)
        component = RecordingComponent(driver)
        driver.add_component(component)
        levels: List[int] = []

        driver.run(on_level=levels.append)

        assert component.calls == [
            "before_all",
            "before_registration",
            "initialize",
            "level0",
            "level1",
            "level2",
            "finalize",
        ]
        assert levels == [0, 1, 2]
        assert driver.current_level is None

    def test_nonzero_status_aborts(self) -> None:
        driver = MultiResolutionDriver(number_of_resolutions=2, number_of_parameters=1)
        component = RecordingComponent(driver, status=1)
        driver.add_component(component)

        with pytest.raises(RuntimeError, match="returned status 1"):
            driver.run()
        assert component.calls == ["before_all", "finalize"]

    def test_hook_error_survives_finalize_error(self, caplog) -> None:
        driver = MultiResolutionDriver(number_of_resolutions=2, number_of_parameters=1)
        failing = FailingComponent(driver)
        later = RecordingComponent(driver)
        driver.add_component(failing)
        driver.add_component(later)

        with pytest.raises(ValueError, match="boom"):
            driver.run()

        assert failing.calls == ["before_all", "before_registration", "finalize"]
        assert later.calls[-1] == "finalize"
        assert "FailingComponent.finalize() failed: cleanup failed" in caplog.text

    def test_finalize_error_raised_after_all_components(self) -> None:
        driver = MultiResolutionDriver(number_of_resolutions=1, number_of_parameters=0)

        class FailingCleanup(RecordingComponent):
            def finalize(self) -> None:
                super().finalize()
                raise RuntimeError("cleanup failed")

        first = FailingCleanup(driver)
        second = RecordingComponent(driver)
        driver.add_component(first)
        driver.add_component(second)

        with pytest.raises(RuntimeError, match="cleanup failed"):
            driver.run()
        assert second.calls[-1] == "finalize"

    def test_no_level_outside_loop(self) -> None:
        driver = MultiResolutionDriver(number_of_resolutions=1, number_of_parameters=0)
        with pytest.raises(RuntimeError, match="No resolution level"):
            driver.get_current_level()

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError, match="number_of_resolutions"):
            MultiResolutionDriver(number_of_resolutions=0, number_of_parameters=1)
        with pytest.raises(ValueError, match="number_of_parameters"):
            MultiResolutionDriver(number_of_resolutions=1, number_of_parameters=-1)


class TestSchedulerRun:
    def test_full_run_installs_masks_per_level(self, tmp_path: Path) -> None:
        fixed_path = _write_cube(tmp_path / "fixed.nii.gz")
        moving_path = _write_cube(tmp_path / "moving.nii.gz")
        configuration = Configuration(
            parameters={"NumberOfResolutions": 3},
            command_line={"-fMask": str(fixed_path), "-mMask": str(moving_path)},
        )
        metric = MaskedMetricBase()
        driver = MultiResolutionDriver(number_of_resolutions=3, number_of_parameters=12)
        scheduler = ResolutionErosionScheduler(configuration, metric, driver)
        driver.add_component(scheduler)

        counts = []

        def record(level: int) -> None:
            counts.append(
                (level, metric.fixed_mask.voxel_count, metric.moving_mask.voxel_count)
            )
            assert metric.derivative_step_length_scales.shape == (12,)

        driver.run(on_level=record)

        assert counts == [
            (0, 20 ** 3, 12 ** 3),
            (1, 24 ** 3, 20 ** 3),
            (2, 26 ** 3, 24 ** 3),
        ]
        assert metric.fixed_mask is None
        assert metric.moving_mask is None

    def test_run_without_masks(self) -> None:
        metric = MaskedMetricBase()
        driver = MultiResolutionDriver(number_of_resolutions=3, number_of_parameters=2)
        scheduler = ResolutionErosionScheduler(Configuration(), metric, driver)
        driver.add_component(scheduler)
        seen = []

        driver.run(on_level=lambda level: seen.append(metric.masked_voxel_counts()))

        assert seen == [{"fixed": None, "moving": None}] * 3

    def test_load_failure_aborts_run(self, tmp_path: Path) -> None:
        configuration = Configuration(
            command_line={"-fMask": str(tmp_path / "missing.nii.gz")}
        )
        metric = MaskedMetricBase()
        driver = MultiResolutionDriver(number_of_resolutions=3, number_of_parameters=2)
        scheduler = ResolutionErosionScheduler(configuration, metric, driver)
        driver.add_component(scheduler)
        levels: List[int] = []

        with pytest.raises(MaskLoadError, match="fixed mask"):
            driver.run(on_level=levels.append)
        assert levels == []
        assert scheduler.original_mask(MaskRole.FIXED) is None

    def test_second_run_reports_lifecycle_error(self) -> None:
        metric = MaskedMetricBase()
        driver = MultiResolutionDriver(number_of_resolutions=2, number_of_parameters=1)
        scheduler = ResolutionErosionScheduler(Configuration(), metric, driver)
        driver.add_component(scheduler)
        driver.run()

        with pytest.raises(LifecycleError, match="before_all"):
            driver.run()
