import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import ValidationError

from schemas import QuizTest

logger = logging.getLogger(__name__)


class QuizBank:
    """Read-only store of quiz definitions keyed by test id."""

    def __init__(self):
        self.tests: Dict[str, QuizTest] = {}

    def add_test(self, data: dict) -> QuizTest:
        test = QuizTest.model_validate(data)
        self.tests[test.metadata.id] = test
        return test

    def load_directory(self, path: str) -> int:
        """Load every *.json file in `path`. Bad files are logged and skipped."""
        self.tests.clear()
        try:
            filenames = sorted(os.listdir(path))
        except OSError:
            logger.exception("Could not read quiz directory %s", path)
            return 0

        for filename in filenames:
            if not filename.endswith(".json"):
                continue
            file_path = os.path.join(path, filename)
            try:
                with open(file_path, encoding="utf-8") as f:
                    data = json.load(f)
                test = self.add_test(data)
            except ValidationError as exc:
                logger.error("Skipping invalid quiz file %s: %d error(s)", filename, exc.error_count())
                continue
            except (OSError, ValueError) as exc:
                logger.error("Skipping quiz file %s: %s", filename, exc)
                continue
            logger.debug("Loaded quiz '%s' (%d questions) from %s",
                         test.metadata.id, len(test.questions), filename)

        logger.info("Loaded %d test(s) from %s", len(self.tests), path)
        return len(self.tests)

    def get_test_by_id(self, test_id: str) -> Optional[QuizTest]:
        return self.tests.get(test_id)

    def list_by_category(self) -> Dict[str, List[dict]]:
        """Test metadata grouped by category; categories and names sorted."""
        grouped: Dict[str, List[dict]] = {}
        for test in self.tests.values():
            category = test.metadata.category or "Uncategorized"
            grouped.setdefault(category, []).append(test.metadata.model_dump())
        return {
            category: sorted(grouped[category], key=lambda m: m["name"])
            for category in sorted(grouped)
        }


quiz_bank = QuizBank()
