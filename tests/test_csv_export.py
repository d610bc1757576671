import logging

from portal.utils.csv_export import registrations_to_csv, csv_download, read_participant_rows

HEADER = "Name,IITP No,Organization,Submission Time"


def _reg(name="Ravi Kumar", iitp_no="IITP100", organization="Belden India",
         submitted="2024-03-01T10:00:00+00:00"):
    return {"id": "x", "name": name, "iitpNo": iitp_no,
            "organization": organization, "submissionTime": submitted}


class TestRegistrationsToCsv:
    def test_header_and_one_line_per_registration(self):
        regs = [_reg(iitp_no=f"IITP{i}") for i in range(3)]
        text = registrations_to_csv(regs)
        lines = text.split("\r\n")
        assert lines[0] == HEADER
        assert len(lines) == len(regs) + 1

    def test_rows_joined_with_crlf_without_trailing_break(self):
        text = registrations_to_csv([_reg(), _reg()])
        assert "\r\n" in text
        assert not text.endswith("\r\n")
        assert "\n" not in text.replace("\r\n", "")

    def test_field_with_comma_is_quoted(self):
        text = registrations_to_csv([_reg(organization="TE Connectivity, Shirwal")])
        assert '"TE Connectivity, Shirwal"' in text.split("\r\n")[1]

    def test_embedded_quotes_are_doubled(self):
        text = registrations_to_csv([_reg(name='Anil "Andy" Rao')])
        assert text.split("\r\n")[1].startswith('"Anil ""Andy"" Rao",')

    def test_field_with_newline_is_quoted(self):
        text = registrations_to_csv([_reg(name="Line one\nLine two")])
        assert '"Line one\nLine two"' in text

    def test_plain_fields_are_not_quoted(self):
        text = registrations_to_csv([_reg()])
        assert text.split("\r\n")[1] == "Ravi Kumar,IITP100,Belden India,2024-03-01T10:00:00+00:00"

    def test_simple_record_survives_naive_parse(self):
        reg = _reg()
        text = registrations_to_csv([reg])
        header, row = [line.split(",") for line in text.split("\r\n")]
        assert header == ["Name", "IITP No", "Organization", "Submission Time"]
        assert row == [reg["name"], reg["iitpNo"], reg["organization"], reg["submissionTime"]]

    def test_missing_field_is_blank(self):
        reg = _reg()
        reg["organization"] = None
        assert registrations_to_csv([reg]).split("\r\n")[1] == "Ravi Kumar,IITP100,,2024-03-01T10:00:00+00:00"

    def test_empty_input_is_noop_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="portal.utils.csv_export"):
            assert registrations_to_csv([]) is None
        assert "No data to export." in caplog.text


class TestCsvDownload:
    def test_attachment_response(self):
        resp = csv_download([_reg()], "batch.csv")
        assert resp.headers["Content-Disposition"] == "attachment; filename=batch.csv"
        assert resp.headers["Content-Type"].startswith("text/csv")
        assert resp.get_data(as_text=True).startswith(HEADER)

    def test_empty_input_returns_none(self):
        assert csv_download([], "batch.csv") is None

    def test_filename_is_sanitized(self):
        resp = csv_download([_reg()], "../../etc/passwd")
        assert resp.headers["Content-Disposition"] == "attachment; filename=etc_passwd.csv"

    def test_filename_cannot_inject_header_parameters(self):
        resp = csv_download([_reg()], 'x.csv"; size=1\r\nX-Evil: 1')
        disposition = resp.headers["Content-Disposition"]
        assert "\r" not in disposition and "\n" not in disposition
        assert disposition.count(";") == 1
        assert "X-Evil" not in resp.headers


class TestReadParticipantRows:
    def test_headers_are_matched_loosely(self):
        text = "Name,IITP No.,Mobile,Enrolled Courses\r\nAsha,IITP1,9876543210,Diploma; Advance Diploma\r\n"
        rows = read_participant_rows(text)
        assert rows == [{
            "name": "Asha",
            "iitpNo": "IITP1",
            "mobile": "9876543210",
            "enrolledCourses": ["Diploma", "Advance Diploma"],
        }]

    def test_unknown_columns_are_ignored(self):
        rows = read_participant_rows("name,iitp_no,favourite colour\nAsha,IITP1,blue\n")
        assert rows == [{"name": "Asha", "iitpNo": "IITP1"}]
