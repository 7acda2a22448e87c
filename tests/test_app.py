import pytest

testing = pytest.importorskip("streamlit.testing.v1")


def test_pdf_is_built_only_when_requested(make_invoice):
    invoice = make_invoice()
    at = testing.AppTest.from_file("../app.py", default_timeout=30)
    at.session_state["invoices"] = [invoice]
    at.run()
    assert not at.exception
    assert at.get("download_button") == []
    assert f"pdf-{invoice.id}" not in at.session_state

    at.button(key=f"prep-{invoice.id}").click().run()
    assert not at.exception
    assert len(at.get("download_button")) == 1
    assert at.session_state[f"pdf-{invoice.id}"].startswith(b"%PDF")


def test_delete_removes_invoice_from_list(make_invoice):
    invoice = make_invoice()
    at = testing.AppTest.from_file("../app.py", default_timeout=30)
    at.session_state["invoices"] = [invoice]
    at.run()
    at.button(key=f"delete-{invoice.id}").click().run()
    assert not at.exception
    assert at.session_state["invoices"] == []
