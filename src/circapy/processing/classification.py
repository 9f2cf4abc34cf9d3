"""Light source classifiers and the arbiter choosing between them."""

import abc
import datetime
import operator
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from circapy.core import computations, config, exceptions, models
from circapy.processing import colorimetry

logger = config.get_logger()


@dataclass(frozen=True)
class ClassificationContext:
    """Ambient context available to the classifiers.

    Attributes:
        time: The time of the classification.
        current_lux: The current ambient illuminance.
        screen_brightness: The screen brightness fraction, if known.
        screen_on: Whether the screen is on.
        recent_samples: Samples recorded shortly before the classification.
    """

    time: datetime.datetime
    current_lux: float
    screen_brightness: Optional[float] = None
    screen_on: bool = True
    recent_samples: Sequence[models.LightSample] = field(default_factory=tuple)


class AbstractLightClassifier(abc.ABC):
    """Interface of a light source classification method."""

    @abc.abstractmethod
    def classify(self, context: ClassificationContext) -> models.ClassificationResult:
        """Classify the light source in the given context.

        Raises:
            ClassificationError: If this method cannot produce a result.
        """
        pass


class ColorSampleClassifier(AbstractLightClassifier):
    """Classify from a color sample with CIE xy colorimetry.

    The color sample is obtained from a provider, typically wrapping a camera
    capture. The provider returns None or raises ClassificationUnavailableError
    when no sample can be obtained.
    """

    def __init__(self, rgb_provider: Callable[[], Optional[models.RGB]]) -> None:
        """Initialize the classifier.

        Args:
            rgb_provider: Callable returning the current gamma encoded sRGB sample.
        """
        self.rgb_provider = rgb_provider

    @classmethod
    def from_rgb(cls, rgb: models.RGB) -> "ColorSampleClassifier":
        """Classifier for a color sample that was captured beforehand."""
        return cls(lambda: rgb)

    def classify(self, context: ClassificationContext) -> models.ClassificationResult:
        """Classify the light source from the provided color sample.

        Args:
            context: The ambient context, unused by this method.

        Returns:
            The colorimetric classification.

        Raises:
            ClassificationUnavailableError: If no color sample is available.
            InvalidColorSampleError: If the sample is outside the valid domain.
        """
        rgb = self.rgb_provider()
        if rgb is None:
            raise exceptions.ClassificationUnavailableError(
                "No color sample available."
            )
        return colorimetry.classify_rgb(rgb)


class HeuristicClassifier(AbstractLightClassifier):
    """Infer the light source from time of day, illuminance and screen state.

    When the screen is bright and its estimated illuminance exceeds the dominance
    fraction of the current illuminance, the screen is taken as the light source.
    Otherwise a table keyed on time of day band and illuminance band decides.
    """

    SCREEN_CONFIDENCE = 0.7

    # (comparison, ((lux bound, light type, confidence), ...)), first match wins.
    BAND_RULES = {
        "night": (
            operator.ge,
            (
                (200.0, models.LightType.cool, 0.5),
                (50.0, models.LightType.neutral, 0.6),
                (float("-inf"), models.LightType.warm, 0.7),
            ),
        ),
        "morning": (
            operator.gt,
            (
                (1000.0, models.LightType.daylight, 0.8),
                (500.0, models.LightType.cool, 0.7),
                (float("-inf"), models.LightType.neutral, 0.6),
            ),
        ),
        "daytime": (
            operator.gt,
            (
                (1000.0, models.LightType.daylight, 0.8),
                (500.0, models.LightType.cool, 0.7),
                (200.0, models.LightType.neutral, 0.6),
                (float("-inf"), models.LightType.warm, 0.6),
            ),
        ),
    }

    def __init__(
        self,
        screen_settings: Optional[config.ScreenSettings] = None,
        brightness_threshold: float = 0.5,
        screen_dominance: float = 0.7,
    ) -> None:
        """Initialize the classifier.

        Args:
            screen_settings: Screen photometry used to estimate screen lux.
            brightness_threshold: Brightness above which the screen may dominate.
            screen_dominance: Share of the current illuminance the screen must
                exceed to dominate.
        """
        self.screen_settings = screen_settings or config.ScreenSettings()
        self.brightness_threshold = brightness_threshold
        self.screen_dominance = screen_dominance

    def classify(self, context: ClassificationContext) -> models.ClassificationResult:
        """Classify the light source heuristically. This method never fails."""
        if self._screen_dominates(context):
            logger.debug("Detected screen-dominant lighting.")
            return models.ClassificationResult(
                light_type=models.LightType.screen,
                confidence=self.SCREEN_CONFIDENCE,
                method="heuristic",
            )

        band = time_band(context.time.hour)
        compare, rules = self.BAND_RULES[band]
        for bound, light_type, confidence in rules:
            if compare(context.current_lux, bound):
                break

        logger.debug(
            "Heuristic classification (%s band): %s, confidence %.2f",
            band,
            light_type.value,
            confidence,
        )
        return models.ClassificationResult(
            light_type=light_type, confidence=confidence, method="heuristic"
        )

    def _screen_dominates(self, context: ClassificationContext) -> bool:
        """Whether the screen provides most of the light at the eye."""
        if not context.screen_on or context.screen_brightness is None:
            return False
        if context.screen_brightness <= self.brightness_threshold:
            return False
        screen_lux = computations.interpolate_table(
            self.screen_settings.brightness_to_lux, context.screen_brightness
        )
        return screen_lux > context.current_lux * self.screen_dominance


def time_band(hour: int) -> str:
    """Time of day band used by the heuristic table.

    Night covers 19:00-06:00, morning 06:00-10:00 and daytime 10:00-19:00.
    """
    if hour >= 19 or hour < 6:
        return "night"
    if hour < 10:
        return "morning"
    return "daytime"


class ClassificationArbiter:
    """Choose between interchangeable classifiers by confidence.

    The preferred classifiers are tried first. Results that fail or whose
    confidence does not exceed the minimum confidence are discarded; the most
    confident remaining result wins. Without one, the fallback classifier decides.

    Attributes:
        preferred: Classifiers tried first, e.g. color sample based ones.
        fallback: Classifier that always produces a result.
        min_confidence: Confidence a preferred result must exceed.
    """

    def __init__(
        self,
        preferred: Sequence[AbstractLightClassifier] = (),
        fallback: Optional[AbstractLightClassifier] = None,
        min_confidence: float = 0.5,
    ) -> None:
        """Initialize the arbiter.

        Args:
            preferred: Classifiers tried first, in order of preference.
            fallback: Classifier used when no preferred result is accepted.
                Defaults to a HeuristicClassifier.
            min_confidence: Confidence a preferred result must exceed.
        """
        self.preferred: List[AbstractLightClassifier] = list(preferred)
        self.fallback = fallback or HeuristicClassifier()
        self.min_confidence = min_confidence

    def classify(
        self, context: ClassificationContext, prefer_color: bool = True
    ) -> models.ClassificationResult:
        """Classify with the best available method.

        Args:
            context: The ambient context.
            prefer_color: If False, the preferred classifiers are skipped.

        Returns:
            The chosen classification.
        """
        accepted: List[models.ClassificationResult] = []
        if prefer_color:
            for classifier in self.preferred:
                try:
                    result = classifier.classify(context)
                except exceptions.ClassificationError as exc_info:
                    logger.warning(
                        "%s failed: %s", type(classifier).__name__, exc_info
                    )
                    continue
                if result.confidence > self.min_confidence:
                    accepted.append(result)
                else:
                    logger.debug(
                        "Discarding %s result with confidence %.2f",
                        result.method,
                        result.confidence,
                    )

        if accepted:
            best = max(accepted, key=lambda result: result.confidence)
            logger.debug("Using %s classification.", best.method)
            return best

        logger.debug("Falling back to %s.", type(self.fallback).__name__)
        return self.fallback.classify(context)
