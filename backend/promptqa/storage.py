import json
import os
from typing import List, Optional

from .models import TestCase, TestReport


class Storage:
    """File-based storage for test cases and reports"""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir
        self.test_cases_dir = os.path.join(data_dir, "test_cases")
        self.reports_dir = os.path.join(data_dir, "reports")
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure all necessary directories exist"""
        os.makedirs(self.test_cases_dir, exist_ok=True)
        os.makedirs(self.reports_dir, exist_ok=True)

    def _get_test_case_file(self, test_case_id: str) -> str:
        return os.path.join(self.test_cases_dir, f"{test_case_id}.json")

    def _get_report_file(self, report_id: str) -> str:
        return os.path.join(self.reports_dir, f"{report_id}.json")

    # Test case operations

    def save_test_case(self, test_case: TestCase):
        """Save test case in the shared action schema"""
        with open(self._get_test_case_file(test_case.id), 'w', encoding='utf-8') as f:
            json.dump(test_case.to_wire(), f, indent=2, default=str)

    def get_test_case(self, test_case_id: str) -> Optional[TestCase]:
        """Get test case by ID"""
        file_path = self._get_test_case_file(test_case_id)
        if not os.path.exists(file_path):
            return None

        with open(file_path, 'r', encoding='utf-8') as f:
            return TestCase.from_wire(json.load(f))

    def get_all_test_cases(self) -> List[TestCase]:
        """Get all test cases, newest first"""
        test_cases = []
        for filename in os.listdir(self.test_cases_dir):
            if filename.endswith('.json'):
                test_case = self.get_test_case(filename[:-5])
                if test_case:
                    test_cases.append(test_case)
        return sorted(test_cases, key=lambda tc: tc.created_at, reverse=True)

    def delete_test_case(self, test_case_id: str) -> bool:
        """Delete a test case"""
        file_path = self._get_test_case_file(test_case_id)
        if os.path.exists(file_path):
            os.remove(file_path)
            return True
        return False

    # Report operations

    def save_report(self, report: TestReport) -> str:
        """Save test report and return its path"""
        file_path = self._get_report_file(report.id)
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(report.model_dump(mode='json'), f, indent=2, default=str)
        return file_path

    def get_report(self, report_id: str) -> Optional[TestReport]:
        """Get report by ID"""
        file_path = self._get_report_file(report_id)
        if not os.path.exists(file_path):
            return None

        with open(file_path, 'r', encoding='utf-8') as f:
            return TestReport(**json.load(f))

    def get_all_reports(self) -> List[TestReport]:
        """Get all reports, newest first"""
        reports = []
        for filename in os.listdir(self.reports_dir):
            if filename.endswith('.json'):
                report = self.get_report(filename[:-5])
                if report:
                    reports.append(report)
        return sorted(reports, key=lambda r: r.executed_at, reverse=True)
