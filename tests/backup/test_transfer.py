"""Tests for the import/export gateway."""

import base64
import json

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet

from bizsnap.backup.exceptions import BackupValidationError, ExportError, ImportFormatError
from bizsnap.backup.models import ExportFormat
from bizsnap.backup.store import BackupStore
from bizsnap.backup.transfer import (
    AdapterChain,
    CanonicalAdapter,
    ImportExportGateway,
    LegacyCollectionsAdapter,
)
from bizsnap.backup.utils import compute_checksum, decompress_text
from bizsnap.config import BackupConfig
from tests.utils import seed


@pytest_asyncio.fixture
async def record(service, client):
    await seed(client)
    result = await service.create_backup("Month end", "Closing stock")
    return await service.get_backup(result.backup_id)


@pytest.fixture
def gateway(service):
    return service.gateway


class TestRender:

    def test_json_document(self, gateway, record, clock):
        text, filename = gateway.render(record, ExportFormat(format="json"))
        document = json.loads(text)

        assert filename == "Month end_2026-10-19.omran"
        assert set(document) == {"metadata", "data", "settings"}
        assert document["metadata"]["exportDate"] == clock.now().isoformat()
        assert document["metadata"]["fileVersion"] == "2.1"
        assert document["metadata"]["exportType"] == "file"
        assert document["metadata"]["id"] == record.metadata.id
        assert document["data"] == record.data
        assert "\n  " in text

    @pytest.mark.asyncio
    async def test_stored_record_untouched(self, gateway, record, service):
        gateway.render(record, export_type="whatsapp")

        stored = await service.get_backup(record.metadata.id)
        assert "exportDate" not in stored.to_document()["metadata"]
        assert stored == record

    def test_compressed(self, gateway, record):
        text, _ = gateway.render(record, ExportFormat(format="compressed", compression_level="maximum"))

        assert json.loads(decompress_text(text))["data"] == record.data

    def test_malformed_encryption_key(self, gateway, record):
        fmt = ExportFormat(format="encrypted", encryption_key="not-a-fernet-key")

        with pytest.raises(ExportError, match="Invalid encryption key"):
            gateway.render(record, fmt)

    def test_non_ascii_is_kept_readable(self, gateway, record):
        record.settings["company_settings"] = {"name": "مؤسسة النور"}

        text, _ = gateway.render(record)
        assert "مؤسسة النور" in text


class TestImport:

    @pytest.mark.asyncio
    async def test_round_trip(self, gateway, record, service):
        text, filename = gateway.render(record)

        imported = await gateway.import_backup(filename, text)

        assert imported.data == record.data
        assert imported.settings == record.settings
        assert imported.metadata.id.startswith("imported_")
        assert imported.metadata.name == "Month end (imported)"
        assert imported.metadata.checksum == record.metadata.checksum
        assert imported.metadata.is_automatic is False
        assert len(await service.list_backups()) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fmt", ["compressed", "encrypted"])
    async def test_round_trip_packed(self, gateway, record, fmt):
        key = Fernet.generate_key().decode()
        text, filename = gateway.render(record, ExportFormat(format=fmt, encryption_key=key))

        imported = await gateway.import_backup(filename, text, encryption_key=key)

        assert imported.data == record.data
        assert imported.settings == record.settings

    @pytest.mark.asyncio
    async def test_encrypted_without_key(self, gateway, record):
        text, filename = gateway.render(
            record, ExportFormat(format="encrypted", encryption_key=Fernet.generate_key().decode())
        )

        with pytest.raises(ImportFormatError, match="encryption key"):
            await gateway.import_backup(filename, text)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["backup.txt", "backup", "backup.omran.zip"])
    async def test_extension_rejected(self, gateway, filename):
        with pytest.raises(ImportFormatError, match="Unsupported file type"):
            await gateway.import_backup(filename, "{}")

    @pytest.mark.asyncio
    async def test_extension_case_insensitive(self, gateway, record):
        text, _ = gateway.render(record)
        imported = await gateway.import_backup("BACKUP.OMRAN", text)
        assert imported.data == record.data

    @pytest.mark.asyncio
    async def test_malformed_content_stores_nothing(self, gateway, service):
        with pytest.raises(ImportFormatError):
            await gateway.import_backup("backup.omran", "{not json")

        assert await service.list_backups() == []

    @pytest.mark.asyncio
    async def test_corrupt_compressed_stream(self, gateway, record, service):
        text, filename = gateway.render(record, ExportFormat(format="compressed"))
        raw = bytearray(base64.b64decode(text))
        raw[12] ^= 0xFF
        raw[13] ^= 0xFF

        with pytest.raises(ImportFormatError, match="corrupt"):
            await gateway.import_backup(filename, base64.b64encode(bytes(raw)).decode("ascii"))
        assert len(await service.list_backups()) == 1

    @pytest.mark.asyncio
    async def test_top_level_must_be_object(self, gateway):
        with pytest.raises(ImportFormatError, match="JSON object"):
            await gateway.import_backup("backup.json", "[1, 2, 3]")

    @pytest.mark.asyncio
    async def test_bytes_with_bom(self, gateway, record):
        text, _ = gateway.render(record)

        imported = await gateway.import_backup("backup.json", b"\xef\xbb\xbf" + text.encode("utf-8"))
        assert imported.data == record.data

    @pytest.mark.asyncio
    async def test_non_utf8_bytes(self, gateway):
        with pytest.raises(ImportFormatError, match="UTF-8"):
            await gateway.import_backup("backup.json", b"\xff\xfe\x00garbage")

    @pytest.mark.asyncio
    async def test_canonical_needs_name_or_id(self, gateway):
        document = {"metadata": {"version": "2.0"}, "data": {"products": []}}

        with pytest.raises(BackupValidationError, match="name and an id"):
            await gateway.import_backup("backup.omran", json.dumps(document))

    @pytest.mark.asyncio
    async def test_unknown_schema_version(self, gateway):
        document = {"schemaVersion": "9.0", "metadata": {"id": "x"}, "data": {}}

        with pytest.raises(ImportFormatError, match="Unsupported backup schema version: 9.0"):
            await gateway.import_backup("backup.omran", json.dumps(document))

    @pytest.mark.asyncio
    async def test_legacy_collections(self, gateway, clock):
        document = {
            "products": [{"id": 1}],
            "customers": [{"id": 2}],
            "company_settings": {"name": "Acme"},
        }

        imported = await gateway.import_backup("export.json", json.dumps(document))

        assert imported.data == {"products": [{"id": 1}], "customers": [{"id": 2}]}
        assert imported.settings == {"company_settings": {"name": "Acme"}}
        assert imported.metadata.name == "Imported backup - 2026-10-19"
        assert imported.metadata.data_types == ["products", "customers"]
        assert imported.metadata.checksum == compute_checksum(imported.data)
        assert imported.metadata.created_at == clock.now()

    @pytest.mark.asyncio
    async def test_unrecognizable_document(self, gateway):
        with pytest.raises(ImportFormatError, match="no recognizable"):
            await gateway.import_backup("export.json", json.dumps({"version": 3, "ok": True}))

    @pytest.mark.asyncio
    async def test_tampered_import_keeps_checksum(self, gateway, record):
        document = json.loads(gateway.render(record)[0])
        document["data"]["products"].append({"id": 999})

        imported = await gateway.import_backup("backup.omran", json.dumps(document))

        assert imported.metadata.checksum == record.metadata.checksum
        assert compute_checksum(imported.data) != imported.metadata.checksum

    @pytest.mark.asyncio
    async def test_size_cap(self, service, clock):
        gateway = ImportExportGateway(
            BackupStore(service.client), clock, {}, config=BackupConfig(max_backup_size=64)
        )
        document = {"products": [{"id": i, "name": "Widget"} for i in range(50)]}

        with pytest.raises(BackupValidationError, match="too large"):
            await gateway.import_backup("big.json", json.dumps(document))

    @pytest.mark.asyncio
    async def test_import_path(self, gateway, record, tmp_path):
        text, filename = gateway.render(record)
        path = tmp_path / filename
        path.write_text(text, encoding="utf-8")

        imported = await gateway.import_path(path)
        assert imported.data == record.data

    @pytest.mark.asyncio
    async def test_import_path_checks_extension_before_reading(self, gateway, tmp_path):
        with pytest.raises(ImportFormatError, match="Unsupported file type"):
            await gateway.import_path(tmp_path / "missing.exe")

    @pytest.mark.asyncio
    async def test_import_path_unreadable(self, gateway, tmp_path):
        with pytest.raises(ImportFormatError, match="Cannot read"):
            await gateway.import_path(tmp_path / "missing.omran")


class TestAdapterChain:

    def setup_method(self):
        self.chain = AdapterChain([CanonicalAdapter()], LegacyCollectionsAdapter())

    def test_metadata_version_selects_canonical(self):
        adapter = self.chain.select({"metadata": {"version": "2.0", "id": "x"}, "data": {}})
        assert isinstance(adapter, CanonicalAdapter)

    def test_structure_selects_canonical_without_version(self):
        adapter = self.chain.select({"metadata": {"id": "x"}, "data": {}})
        assert isinstance(adapter, CanonicalAdapter)

    def test_fallback(self):
        adapter = self.chain.select({"products": []})
        assert isinstance(adapter, LegacyCollectionsAdapter)

    def test_explicit_known_schema_version(self):
        adapter = self.chain.select({"schemaVersion": "2.1", "metadata": {"id": "x"}, "data": {}})
        assert isinstance(adapter, CanonicalAdapter)


class TestExport:

    @pytest.mark.asyncio
    async def test_file_channel(self, gateway, record, config):
        filename, location = await gateway.export(record, "file")

        assert location.endswith(filename)
        with open(location, encoding="utf-8") as f:
            assert json.load(f)["data"] == record.data

    @pytest.mark.asyncio
    async def test_unknown_channel(self, gateway, record):
        with pytest.raises(ExportError, match="Unsupported export channel: fax"):
            await gateway.export(record, "fax")

    @pytest.mark.asyncio
    async def test_share_channel_stamps_export_type(self, gateway, record, opened_urls):
        _, location = await gateway.export(record, "drive")

        with open(location, encoding="utf-8") as f:
            assert json.load(f)["metadata"]["exportType"] == "drive"
        assert opened_urls == ["https://drive.google.com/"]
