"""
Tests for the company API endpoints.
"""

from fastapi import status

from tests.factories import make_company


class TestCompaniesApi:
    def test_list(self, test_client, as_user, employee_user, company_service):
        as_user(employee_user)
        company_service.list_companies.return_value = [make_company("Acme"), make_company("beta")]

        response = test_client.get("/api/companies")

        assert response.status_code == status.HTTP_200_OK
        names = [c["name"] for c in response.json()["data"]]
        assert names == ["Acme", "beta"]

    def test_create_new_returns_201(self, test_client, as_user, employee_user, company_service):
        as_user(employee_user)
        company = make_company("Globex")
        company_service.get_or_create.return_value = (company, True)

        response = test_client.post("/api/companies", json={"name": "Globex"})

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == str(company.id)

    def test_existing_returns_200(self, test_client, as_user, employee_user, company_service):
        as_user(employee_user)
        company_service.get_or_create.return_value = (make_company("Acme"), False)

        response = test_client.post("/api/companies", json={"name": "acme"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Company already exists"

    def test_missing_name(self, test_client, as_user, employee_user, company_service):
        as_user(employee_user)

        response = test_client.post("/api/companies", json={"phone": "555"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert "name" in body["errors"]
        company_service.get_or_create.assert_not_called()
