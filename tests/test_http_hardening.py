import unittest

from tests.base import ApiTestCase


class HttpHardeningTests(ApiTestCase):
    def test_health_has_security_headers_and_request_id(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)

        self.assertEqual(response.headers.get("x-content-type-options"), "nosniff")
        self.assertEqual(response.headers.get("x-frame-options"), "DENY")
        self.assertEqual(response.headers.get("referrer-policy"), "no-referrer")
        self.assertEqual(response.headers.get("cache-control"), "no-store")

        request_id = response.headers.get("x-request-id")
        self.assertIsNotNone(request_id)
        self.assertRegex(str(request_id), r"^[A-Za-z0-9._-]{1,128}$")

    def test_valid_request_id_is_preserved(self):
        response = self.client.get("/health", headers={"X-Request-ID": "deploy-check_42"})
        self.assertEqual(response.headers.get("x-request-id"), "deploy-check_42")

    def test_invalid_request_id_is_replaced(self):
        bad_request_id = "bad id with spaces"
        response = self.client.get("/health", headers={"X-Request-ID": bad_request_id})
        self.assertNotEqual(response.headers.get("x-request-id"), bad_request_id)
        self.assertRegex(str(response.headers.get("x-request-id")), r"^[A-Za-z0-9._-]{1,128}$")

    def test_error_response_keeps_security_headers_and_request_id(self):
        response = self.client.get("/api/v1/users/unknown")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.headers.get("x-content-type-options"), "nosniff")
        self.assertTrue(bool(response.headers.get("x-request-id")))

    def test_requests_are_logged(self):
        with self.assertLogs("crudkit.http", level="INFO") as logs:
            self.client.get("/health")
        self.assertTrue(any("GET /health status=200" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
