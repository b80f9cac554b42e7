from schemas import Metrics


class MetricsCalculator:

    # Fixed estimates used when the model gave us nothing usable
    DEFAULT_LINES_OF_CODE = 10000
    LINES_PER_KB = 100
    DEFAULT_FILES_COUNT = 100
    DEFAULT_COMPLEXITY = 5
    DEFAULT_DEPENDENCIES = 20

    @staticmethod
    def estimate_lines_of_code(size_kb):
        # GitHub reports repository size in KB; 0 or missing means unknown
        if not size_kb:
            return MetricsCalculator.DEFAULT_LINES_OF_CODE
        return int(size_kb * MetricsCalculator.LINES_PER_KB)

    @staticmethod
    def estimate_metrics(size_kb) -> Metrics:
        return Metrics(
            lines_of_code=MetricsCalculator.estimate_lines_of_code(size_kb),
            files_count=MetricsCalculator.DEFAULT_FILES_COUNT,
            avg_complexity=MetricsCalculator.DEFAULT_COMPLEXITY,
            dependencies=MetricsCalculator.DEFAULT_DEPENDENCIES,
        )
