"""
End-to-end enrichment: CSV input through orchestrator and engine to CSV export.

Uses the scripted content source in place of the browser so the whole
pipeline runs without network access.
"""

import pytest
from placeminer.config import Config
from placeminer.exporter import CsvExporter
from placeminer.extractor import ExtractionEngine
from placeminer.ingest import parse_work_items
from placeminer.orchestrator import Orchestrator
from placeminer.progress import ProgressBoard, ProgressChannel
from placeminer.protocols import ResultRecord, WorkItem

from tests.helpers import ACME_HTML, FULL_PLACE_HTML, LOADING_HTML, FakeContentSource, RecordingListener


def build_orchestrator(source, config, fake_clock, *listeners):
    channel = ProgressChannel()
    for listener in listeners:
        channel.subscribe(listener)
    return Orchestrator(
        source,
        ExtractionEngine(config.extraction),
        config.orchestrator,
        channel,
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


@pytest.mark.integration
class TestEnrichmentEndToEnd:
    @pytest.mark.asyncio
    async def test_single_company(self, fake_clock, recorder):
        source = FakeContentSource(default=[LOADING_HTML, ACME_HTML])
        orchestrator = build_orchestrator(source, Config(), fake_clock, recorder)

        records = await orchestrator.run([WorkItem(id=0, company="Acme", city="Springfield", country="US")])

        assert records == [
            ResultRecord(
                company="Acme",
                city="Springfield",
                country="US",
                name="Acme Inc",
                phone="415-555-0100",
                website="https://acme.example",
                email="",
                address="",
            )
        ]
        event = recorder.events[0]
        assert (event.processed_count, event.total, event.success) == (1, 1, True)
        assert source.targets == ["fake://search/Acme, Springfield, US"]
        assert source.released == source.created

    @pytest.mark.asyncio
    async def test_csv_in_csv_out(self, fake_clock, tmp_path):
        items = parse_work_items(
            "Company,City/Town,Country\n"
            "Acme,Springfield,US\n"
            "Globex,Springfield,US\n"
            ",Nowhere,US\n"
            "Initech,,US\n"
            "Umbrella,Raccoon City,US\n"
        )
        source = FakeContentSource(
            pages={"Acme": [ACME_HTML], "Globex": [LOADING_HTML, FULL_PLACE_HTML], "Initech": [LOADING_HTML]},
            fail_on=["Umbrella"],
        )
        config = Config()
        config.orchestrator.max_poll_attempts = 3
        board = ProgressBoard()
        recorder = RecordingListener()
        orchestrator = build_orchestrator(source, config, fake_clock, board, recorder)

        records = await orchestrator.run(items)
        path = CsvExporter(config.export).export(records, tmp_path / "results.csv")

        assert [item.id for item in items] == [0, 1, 2, 3]
        assert [e.status for e in recorder.events] == ["Found", "Found", "Error", "Error"]
        assert recorder.events[2].error_detail.startswith("TimeoutWaitingForReady")
        assert recorder.events[3].error_detail.startswith("ResourceCreationFailure")
        assert board.done
        assert [e.job_id for e in board.newest_first()] == [3, 2, 1, 0]

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "Company,City,Country,Name,Phone,Website,Email,Address"
        assert lines[2] == (
            "Globex,Springfield,US,Globex Corporation,+1 415 555 0199,https://globex.example/,"
            'sales@globex.example,"742 Evergreen Terrace, Springfield"'
        )
        assert lines[3] == "Initech,,US,,,,,"
        assert lines[4] == "Umbrella,Raccoon City,US,,,,,"
        assert len(source.released) == 3
