import pytest
import requests

from tracker.errors import AuthError, FatalConfigurationError, NetworkError, TransientExternalError, ValidationError
from tracker.services import ibr
from tracker.services.background_checks import initiate_background_check, map_vendor_status

STATUS_XML = """<?xml version="1.0"?>
<IBR>
  <RESPONSE>
    <IBR_ID>12345</IBR_ID>
    <CLIENTID>cand-1</CLIENTID>
    <STATUS>P</STATUS>
    <SUBMITTED>2025-08-01</SUBMITTED>
    <EXTENDEDSTATUSES>
      <EXTENDEDSTATUS><SECTION>Criminal</SECTION><STATUS>P</STATUS></EXTENDEDSTATUS>
      <EXTENDEDSTATUS><SECTION>SSN</SECTION><STATUS>R</STATUS></EXTENDEDSTATUS>
    </EXTENDEDSTATUSES>
  </RESPONSE>
</IBR>"""


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code


def make_client(**kw):
    opts = dict(username="u", password="p", base_url="https://ibr.test/webservices/")
    opts.update(kw)
    return ibr.IBRClient(**opts)


def test_parse_status_xml_normalizes_codes():
    [status] = ibr.parse_status_xml(STATUS_XML)
    assert status.id == "12345"
    assert status.status == "Pass"
    assert status.client_id == "cand-1"
    assert status.extended == {"criminal": "Pass", "ssn": "Review"}
    assert status.timestamps == {"submitted": "2025-08-01"}


def test_parse_status_xml_reportstatus_layout():
    xml = '<IBR><REPORTSTATUS id="777"><STATUS>F</STATUS><REPORTURL>https://r/777</REPORTURL></REPORTSTATUS></IBR>'
    [status] = ibr.parse_status_xml(xml)
    assert (status.id, status.status, status.report_url) == ("777", "Fail", "https://r/777")


def test_garbled_response_is_transient():
    with pytest.raises(NetworkError):
        ibr.parse_status_xml("<IBR><RESPONSE>")


def test_parse_submit_xml():
    assert ibr.parse_submit_xml("<IBR><RESPONSE><IBR_ID>999</IBR_ID></RESPONSE></IBR>") == "999"
    with pytest.raises(ValidationError):
        ibr.parse_submit_xml("<IBR><RESPONSE><ERROR>Invalid SSN</ERROR></RESPONSE></IBR>")


def test_submit_xml_carries_applicant_and_auth():
    client = make_client()
    applicant = ibr.Applicant(client_id="cand-1", first="Jane", last="Doe", ssn="123-45-6789",
                              address1="1 Main St", city="Charlotte", state="NC", zipcode="28202",
                              dob="1990-04-05", phone="(704) 555-0100")
    xml = client._with_auth(ibr.build_submit_xml(applicant, "Package 2"))
    assert "<USERNAME>u</USERNAME>" in xml
    assert "<SSN>123456789</SSN>" in xml
    assert "<DOB>04051990</DOB>" in xml
    assert "<PHONE>7045550100</PHONE>" in xml
    assert xml.index("<AUTH>") < xml.index("<REQUESTS>")


def test_missing_credentials_is_fatal():
    with pytest.raises(FatalConfigurationError):
        ibr.IBRClient("", "", "https://ibr.test")


def test_poll_status_posts_to_status_endpoint(monkeypatch, app):
    calls = []

    def fake_post(url, data=None, headers=None, timeout=None):
        calls.append((url, timeout))
        return FakeResponse(STATUS_XML)

    monkeypatch.setattr(ibr.requests, "post", fake_post)
    status = make_client(timeout=12).poll_status("12345")
    assert status.status == "Pass"
    assert calls == [("https://ibr.test/webservices/post_status.cgi", 12)]


@pytest.mark.parametrize("code,exc", [(401, AuthError), (403, AuthError), (500, NetworkError)])
def test_http_errors_are_transient(monkeypatch, app, code, exc):
    monkeypatch.setattr(ibr.requests, "post", lambda *a, **kw: FakeResponse("", code))
    with pytest.raises(exc):
        make_client().poll_status("12345")
    assert issubclass(exc, TransientExternalError)


def test_connection_error_is_network_error(monkeypatch, app):
    def boom(*a, **kw):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(ibr.requests, "post", boom)
    with pytest.raises(NetworkError):
        make_client().poll_status("12345")


def test_case_missing_from_response(monkeypatch, app):
    monkeypatch.setattr(ibr.requests, "post", lambda *a, **kw: FakeResponse(STATUS_XML))
    with pytest.raises(TransientExternalError):
        make_client().poll_status("55555")


def test_mock_mode_never_calls_vendor(monkeypatch, app):
    monkeypatch.setattr(ibr.requests, "post", lambda *a, **kw: pytest.fail("network call in mock mode"))
    client = make_client(mock_mode=True)
    case_id = client.submit(ibr.Applicant("c", "Jane", "Doe", "1", "a", "b", "NC", "1"))
    assert case_id.startswith(ibr.MOCK_PREFIX)
    assert client.poll_status(case_id).status == "Review"


def test_vendor_code_mapping():
    assert map_vendor_status("Pass") == "Completed"
    assert map_vendor_status(" processing ") == "In Progress"
    assert map_vendor_status("FAIL") == "Failed"
    assert map_vendor_status("Review") == "Review"
    with pytest.warns(UserWarning):
        assert map_vendor_status("???") == "In Progress"


def test_initiate_records_open_case(make_candidate, store, vendor):
    candidate = make_candidate()
    initiate_background_check(candidate.id, {"ssn": "123-45-6789", "address1": "1 Main St",
                                             "city": "Charlotte", "state": "NC", "zipcode": "28202"},
                              client=vendor)
    check = store.get(candidate.id, fresh=True).background_check
    assert check["initiated"] is True
    assert check["status"] == "Pending"
    assert check["ibr_id"] == "CASE-1"
    assert vendor.submitted[0].first == "Jane"
    assert vendor.submitted[0].last == "Doe"

    with pytest.raises(ValidationError):
        initiate_background_check(candidate.id, {}, client=vendor)
    assert len(vendor.submitted) == 1
