"""Client for the IBR background-check XML web service.

Only the parts the pipeline needs: submitting an applicant and polling a
case status. Credentials are injected server side into an ``<AUTH>`` block.
"""

import re
import xml.etree.ElementTree as ET
from collections import namedtuple
from datetime import datetime

import requests
from flask import current_app

from ..errors import AuthError, FatalConfigurationError, NetworkError, TransientExternalError, ValidationError

ENDPOINTS = {
    # mock mode talks to the vendor's dev scripts
    True: {"submit": "/post_dev.cgi", "status": "/post_status_dev.cgi"},
    False: {"submit": "/post.cgi", "status": "/post_status.cgi"},
}

MOCK_PREFIX = "MOCK-"

# single-letter codes used inside EXTENDEDSTATUSES
SHORT_CODES = {"P": "Pass", "F": "Fail", "R": "Review"}

VendorStatus = namedtuple("VendorStatus", ["id", "status", "client_id", "report_url", "extended", "timestamps"],
                          defaults=(None, None, None, None))

Applicant = namedtuple("Applicant", [
    "client_id", "first", "last", "ssn", "address1", "city", "state", "zipcode",
    "middle", "dob", "email", "phone", "address2", "gender",
], defaults=(None,) * 6)


def normalize_code(raw):
    raw = (raw or "").strip()
    return SHORT_CODES.get(raw, raw)


def _text(node, tag):
    child = node.find(tag)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def build_status_xml(case_ids):
    root = ET.Element("IBR")
    ET.SubElement(root, "REPORTSTATUS").text = ",".join(case_ids)
    return ET.tostring(root, encoding="unicode")


def build_submit_xml(applicant, order_package):
    root = ET.Element("IBR")
    req = ET.SubElement(ET.SubElement(root, "REQUESTS"), "REQUEST")
    typ = ET.SubElement(req, "TYPE")
    ET.SubElement(typ, "ORDER").text = order_package
    if applicant.client_id:
        ET.SubElement(typ, "CLIENTID").text = applicant.client_id
    name = ET.SubElement(req, "NAME")
    ET.SubElement(name, "LAST").text = applicant.last
    if applicant.middle:
        ET.SubElement(name, "MIDDLE").text = applicant.middle
    ET.SubElement(name, "FIRST").text = applicant.first
    if applicant.dob:
        ET.SubElement(req, "DOB").text = format_dob(applicant.dob)
    ET.SubElement(req, "SSN").text = re.sub(r"\D", "", applicant.ssn or "")
    if applicant.email:
        ET.SubElement(req, "EMAIL").text = applicant.email
        ET.SubElement(req, "EMAIL_REPORT").text = "Y"
    if applicant.phone:
        ET.SubElement(req, "PHONE").text = re.sub(r"\D", "", applicant.phone)
    addr = ET.SubElement(req, "ADDRESS")
    ET.SubElement(addr, "ADDR1").text = applicant.address1
    if applicant.address2:
        ET.SubElement(addr, "ADDR2").text = applicant.address2
    ET.SubElement(addr, "CITY").text = applicant.city
    ET.SubElement(addr, "STATE").text = applicant.state
    ET.SubElement(addr, "ZIPCODE").text = applicant.zipcode
    if applicant.gender in ("M", "F"):
        ET.SubElement(req, "GENDER").text = applicant.gender
    return ET.tostring(root, encoding="unicode")


def format_dob(dob):
    """Vendor wants MMDDYYYY; accept YYYYMMDD, YYYY-MM-DD or already formatted."""
    digits = re.sub(r"\D", "", str(dob))
    if len(digits) == 8 and int(digits[:4]) > 1900:
        return digits[4:] + digits[:4]
    return digits


def parse_status_xml(xml):
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise NetworkError(f"unreadable status response: {e}")

    statuses = []
    for resp in root.iter("RESPONSE"):
        case_id = _text(resp, "IBR_ID")
        if not case_id:
            continue
        extended = {}
        for ext in resp.iter("EXTENDEDSTATUS"):
            section = _text(ext, "SECTION")
            if section:
                extended[section.lower()] = normalize_code(_text(ext, "STATUS"))
        timestamps = {k: v for k, v in (("submitted", _text(resp, "SUBMITTED")),
                                        ("completed", _text(resp, "COMPLETED"))) if v}
        statuses.append(VendorStatus(
            id=case_id,
            status=normalize_code(_text(resp, "STATUS")),
            client_id=_text(resp, "CLIENTID"),
            extended=extended or None,
            timestamps=timestamps or None,
        ))

    if not statuses:
        # older REPORTSTATUS layout
        for rs in root.iter("REPORTSTATUS"):
            case_id = rs.get("id")
            if not case_id:
                continue
            statuses.append(VendorStatus(
                id=case_id,
                status=normalize_code(_text(rs, "STATUS")),
                client_id=_text(rs, "CLIENT_ID"),
                report_url=_text(rs, "REPORTURL"),
            ))
    return statuses


def parse_submit_xml(xml):
    """Return the vendor case id, or raise ValidationError with the vendor's message."""
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise NetworkError(f"unreadable submit response: {e}")
    for resp in root.iter("RESPONSE"):
        case_id = _text(resp, "IBR_ID")
        if case_id:
            return case_id
        error = _text(resp, "ERROR")
        if error:
            raise ValidationError(f"background check rejected: {error}")
    raise NetworkError("no case id in submit response")


class IBRClient:
    def __init__(self, username, password, base_url, mock_mode=False, timeout=30, order_package="Package 2"):
        if not username or not password:
            raise FatalConfigurationError("IBR API credentials not configured (IBR_API_USERNAME / IBR_API_PASSWORD)")
        self.username = username
        self.password = password
        self.base_url = base_url.rstrip("/")
        self.mock_mode = mock_mode
        self.timeout = timeout
        self.order_package = order_package

    @classmethod
    def from_config(cls, config=None):
        config = config or current_app.config
        return cls(
            config.get("IBR_API_USERNAME"),
            config.get("IBR_API_PASSWORD"),
            config.get("IBR_BASE_URL", "https://ibrinc.com/webservices"),
            mock_mode=bool(config.get("IBR_MOCK_MODE")),
            timeout=config.get("IBR_TIMEOUT_SEC", 30),
            order_package=config.get("IBR_ORDER_PACKAGE", "Package 2"),
        )

    def _with_auth(self, xml):
        root = ET.fromstring(xml)
        auth = ET.Element("AUTH")
        ET.SubElement(auth, "USERNAME").text = self.username
        ET.SubElement(auth, "PASSWORD").text = self.password
        root.insert(0, auth)
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")

    def _post(self, kind, xml):
        url = self.base_url + ENDPOINTS[self.mock_mode][kind]
        try:
            r = requests.post(url, data=self._with_auth(xml).encode("utf-8"),
                              headers={"Content-Type": "text/xml"}, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"IBR {kind} request failed: {e}")
        if r.status_code in (401, 403):
            raise AuthError(f"IBR rejected credentials ({r.status_code})")
        if r.status_code >= 400:
            raise NetworkError(f"IBR API error: {r.status_code}")
        return r.text

    def submit(self, applicant):
        if self.mock_mode:
            case_id = f"{MOCK_PREFIX}{int(datetime.utcnow().timestamp() * 1000)}"
            current_app.logger.info('IBR mock mode, issued case id %s', case_id)
            return case_id
        return parse_submit_xml(self._post("submit", build_submit_xml(applicant, self.order_package)))

    def poll_status(self, case_id):
        if case_id.startswith(MOCK_PREFIX):
            return VendorStatus(id=case_id, status="Review", client_id="TEST001")
        for status in parse_status_xml(self._post("status", build_status_xml([case_id]))):
            if status.id != case_id:
                continue
            if status.status == "Unauthorized":
                raise AuthError(f"IBR returned Unauthorized for case {case_id}")
            return status
        raise TransientExternalError(f"IBR returned no status for case {case_id}")
