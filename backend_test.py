import requests
import sys
import os
from datetime import datetime


class WorkshopConsoleAPITester:
    def __init__(self, base_url=None):
        self.base_url = (base_url or os.environ.get("CONSOLE_API_URL", "http://localhost:8000/api")).rstrip("/")
        self.token = None
        self.event_id = None
        self.attendee_id = None
        self.mentor_id = None
        self.task_id = None
        self.tests_run = 0
        self.tests_passed = 0
        self.test_results = []

    def log_test(self, name, success, details=""):
        """Log test result"""
        self.tests_run += 1
        if success:
            self.tests_passed += 1
            print(f"✅ {name}")
        else:
            print(f"❌ {name} - {details}")

        self.test_results.append({
            "test": name,
            "success": success,
            "details": details
        })

    def _headers(self):
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def run_test(self, name, method, endpoint, expected_status, data=None, files=None, form=None):
        """Run a single API test"""
        url = f"{self.base_url}/{endpoint}"
        try:
            response = requests.request(
                method,
                url,
                json=data if files is None else None,
                files=files,
                data=form,
                headers=self._headers(),
                timeout=30,
            )

            success = response.status_code == expected_status
            details = f"Status: {response.status_code}"

            if not success:
                try:
                    error_data = response.json()
                    details += f", Error: {error_data.get('detail') or error_data.get('message', 'Unknown error')}"
                except ValueError:
                    details += f", Response: {response.text[:100]}"

            self.log_test(name, success, details)
            is_json = response.headers.get("content-type", "").startswith("application/json")
            return success, response.json() if success and response.content and is_json else {}

        except requests.RequestException as e:
            self.log_test(name, False, f"Exception: {str(e)}")
            return False, {}

    def test_health_endpoints(self):
        """Test basic health endpoints"""
        print("\n🔍 Testing Health Endpoints...")
        self.run_test("Root API endpoint", "GET", "", 200)
        self.run_test("Health check endpoint", "GET", "health", 200)

    def test_login(self):
        """Log in with CONSOLE_EMAIL/CONSOLE_PASSWORD, registering a throwaway user otherwise"""
        print("\n🔍 Testing Authentication...")
        email = os.environ.get("CONSOLE_EMAIL")
        password = os.environ.get("CONSOLE_PASSWORD")
        if email and password:
            success, response = self.run_test("Login", "POST", "login", 200, {"email": email, "password": password})
        else:
            stamp = datetime.now().strftime("%H%M%S")
            success, response = self.run_test("Register", "POST", "register", 201, {
                "username": f"smoke{stamp}",
                "email": f"smoke{stamp}@example.com",
                "password": "smokepass123",
                "name": f"Smoke Tester {stamp}",
            })
        if success and "access_token" in response:
            self.token = response["access_token"]
            self.run_test("Current user", "GET", "user", 200)
            return True
        return False

    def test_event_flow(self):
        print("\n🔍 Testing Events & Attendees...")
        success, event = self.run_test("Create event", "POST", "events", 201, {
            "name": f"Smoke Workshop {datetime.now():%H%M%S}",
            "start_date": "2026-06-01T09:00:00",
            "end_date": "2026-06-01T17:00:00",
        })
        if not success:
            return False
        self.event_id = event["id"]

        success, attendee = self.run_test("Create attendee", "POST", f"events/{self.event_id}/attendees", 201, {
            "name": "Smoke Attendee",
            "email": "smoke.attendee@example.com",
        })
        if success:
            self.attendee_id = attendee["id"]

        csv_content = b"Name,Email\nImported Person,imported@example.com\n"
        self.run_test(
            "Import attendees (CSV)", "POST", f"events/{self.event_id}/import-attendees", 201,
            files={"file": ("attendees.csv", csv_content, "text/csv")},
            form={"generate_credentials": "false"},
        )
        self.run_test("List attendees", "GET", f"events/{self.event_id}/attendees", 200)
        return True

    def test_mentor_flow(self):
        print("\n🔍 Testing Mentors...")
        success, mentor = self.run_test("Create mentor", "POST", f"events/{self.event_id}/mentors", 201, {
            "name": "Smoke Mentor",
            "email": "smoke.mentor@example.com",
            "expertise": "Testing",
        })
        if not success or not self.attendee_id:
            return
        self.mentor_id = mentor["id"]
        self.run_test("Assign mentor", "POST", f"events/{self.event_id}/assign-mentors", 200, {
            "mentor_id": self.mentor_id,
            "attendee_ids": [self.attendee_id],
        })

    def test_task_flow(self):
        print("\n🔍 Testing Tasks & Progress...")
        success, task = self.run_test("Create task", "POST", f"events/{self.event_id}/tasks", 201, {"name": "Smoke task"})
        if not success or not self.attendee_id:
            return
        self.task_id = task["id"]
        self.run_test("Complete task", "POST", f"tasks/{self.task_id}/progress", 201, {
            "attendee_id": self.attendee_id,
            "status": "completed",
        })

    def test_reports(self):
        print("\n🔍 Testing Reports...")
        self.run_test("Dashboard stats", "GET", f"events/{self.event_id}/stats", 200)
        self.run_test("Top performers", "GET", f"events/{self.event_id}/top-performers", 200)
        self.run_test("Report rows", "GET", f"events/{self.event_id}/reports", 200)
        self.run_test("Report export", "GET", f"events/{self.event_id}/reports/export?format=csv", 200)
        self.run_test("Feedback summary", "GET", f"events/{self.event_id}/reports/feedback", 200)

    def run_all_tests(self):
        """Run all tests"""
        print(f"🚀 Starting workshop console API tests against {self.base_url}")

        self.test_health_endpoints()
        if self.test_login() and self.test_event_flow():
            self.test_mentor_flow()
            self.test_task_flow()
            self.test_reports()

        return self.print_summary()

    def print_summary(self):
        """Print test summary"""
        print(f"\n📊 Test Summary:")
        print(f"Tests run: {self.tests_run}")
        print(f"Tests passed: {self.tests_passed}")
        if self.tests_run:
            print(f"Success rate: {(self.tests_passed/self.tests_run*100):.1f}%")

        if self.tests_passed < self.tests_run:
            print(f"\n❌ Failed tests:")
            for result in self.test_results:
                if not result['success']:
                    print(f"  - {result['test']}: {result['details']}")

        return self.tests_passed == self.tests_run


def main():
    tester = WorkshopConsoleAPITester()
    success = tester.run_all_tests()
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
