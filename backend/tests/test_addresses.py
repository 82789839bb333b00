# Overview: Pytest coverage for saved shipping addresses.

import pytest


HOME = {"street": "1 Rizal Ave", "city": "Manila", "state": "NCR", "zip_code": "1000", "country": "Philippines"}
WORK = {"street": "99 Ayala Ave", "city": "Makati", "state": "NCR", "zip_code": "1226"}
CABIN = {"street": "5 Session Rd", "city": "Baguio", "state": "Benguet", "zip_code": "2600"}

URL = "/api/users/me/addresses"


class TestAddresses:

    def test_add_and_list(self, client, customer_headers):
        resp = client.post(URL, json=HOME, headers=customer_headers)
        assert resp.status_code == 201

        resp = client.post(URL, json=WORK, headers=customer_headers)
        addresses = resp.get_json()["data"]["addresses"]
        assert [a["city"] for a in addresses] == ["Manila", "Makati"]
        assert addresses[1]["country"] == "USA"

        listed = client.get(URL, headers=customer_headers).get_json()["data"]["addresses"]
        assert listed == addresses

    def test_capacity_is_two(self, client, customer_headers):
        client.post(URL, json=HOME, headers=customer_headers)
        client.post(URL, json=WORK, headers=customer_headers)

        resp = client.post(URL, json=CABIN, headers=customer_headers)
        assert resp.status_code == 400
        assert len(client.get(URL, headers=customer_headers).get_json()["data"]["addresses"]) == 2

    def test_update_by_index(self, client, customer_headers):
        client.post(URL, json=HOME, headers=customer_headers)
        resp = client.put(f"{URL}/0", json=CABIN, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["addresses"][0]["city"] == "Baguio"

    def test_delete_by_index(self, client, customer_headers):
        client.post(URL, json=HOME, headers=customer_headers)
        client.post(URL, json=WORK, headers=customer_headers)

        resp = client.delete(f"{URL}/0", headers=customer_headers)
        assert resp.status_code == 200
        assert [a["city"] for a in resp.get_json()["data"]["addresses"]] == ["Makati"]

    @pytest.mark.parametrize("method", ["put", "delete"])
    def test_out_of_range_index(self, client, customer_headers, method):
        client.post(URL, json=HOME, headers=customer_headers)
        resp = getattr(client, method)(f"{URL}/1", json=WORK, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Invalid address index."
        assert len(client.get(URL, headers=customer_headers).get_json()["data"]["addresses"]) == 1

    def test_invalid_address(self, client, customer_headers):
        resp = client.post(URL, json={"street": "1 Rizal Ave"}, headers=customer_headers)
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.get_json()["errors"]}
        assert fields == {"address.city", "address.state", "address.zip_code"}

    def test_addresses_are_per_user(self, client, customer_headers, other_customer_headers):
        client.post(URL, json=HOME, headers=customer_headers)
        assert client.get(URL, headers=other_customer_headers).get_json()["data"]["addresses"] == []
