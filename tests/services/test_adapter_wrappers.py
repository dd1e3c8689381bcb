"""Tests for adapter wrappers (operation naming and call tracing)."""

import logging

import pytest

from carrierkit.errors import CarrierError
from carrierkit.models import CreateShipmentRequest, TrackingRequest
from carrierkit.services.adapter import _AdapterProxy, with_call_tracing, with_operation_name
from tests.helpers.fake_adapters import ParcelOnlyAdapter, RecordingAdapter


class TestWithOperationName:

    @pytest.mark.asyncio
    async def test_names_direct_calls(self, context, parcels, credentials):
        adapter = RecordingAdapter()
        wrapped = with_operation_name(adapter)
        await wrapped.create_shipment(
            CreateShipmentRequest(parcels=parcels, credentials=credentials), context,
        )
        assert adapter.calls[0][2] == "create_shipment"

    @pytest.mark.asyncio
    async def test_existing_name_kept(self, context, parcels, credentials):
        adapter = RecordingAdapter()
        await with_operation_name(adapter).create_shipment(
            CreateShipmentRequest(parcels=parcels, credentials=credentials),
            context.with_operation("outer"),
        )
        assert adapter.calls[0][2] == "outer"

    def test_forwards_attributes(self):
        wrapped = with_operation_name(RecordingAdapter())
        assert wrapped.id == "recording"
        assert wrapped.supports("CLOSE_SHIPMENT")


class TestWithCallTracing:
    """Start, completion and failure are logged with the adapter id."""

    @pytest.mark.asyncio
    async def test_logs_completion(self, context, parcels, credentials, caplog):
        wrapped = with_call_tracing(RecordingAdapter())
        with caplog.at_level(logging.DEBUG, logger="carrierkit"):
            result = await wrapped.create_shipment(
                CreateShipmentRequest(parcels=parcels, credentials=credentials), context,
            )
        assert result.carrier_id == "SHP-1"
        messages = [r.getMessage() for r in caplog.records]
        assert "[recording] create_shipment started" in messages
        assert any(m.startswith("[recording] create_shipment completed in") for m in messages)

    @pytest.mark.asyncio
    async def test_logs_and_reraises_failure(self, context, caplog):
        wrapped = with_call_tracing(ParcelOnlyAdapter())
        with caplog.at_level(logging.DEBUG, logger="carrierkit"):
            with pytest.raises(CarrierError):
                await wrapped.track(TrackingRequest(tracking_number="X"), context)
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors
        assert errors[0].getMessage().startswith("[parcel-only] track failed after")

    @pytest.mark.asyncio
    async def test_custom_logger(self, context, parcels, credentials, caplog):
        trace = logging.getLogger("tests.trace")
        wrapped = with_call_tracing(RecordingAdapter(), trace_logger=trace)
        with caplog.at_level(logging.INFO, logger="tests.trace"):
            await wrapped.create_shipment(
                CreateShipmentRequest(parcels=parcels, credentials=credentials), context,
            )
        assert any(r.name == "tests.trace" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_invoke_goes_through_wrapper(self, context, parcels, credentials, caplog):
        adapter = RecordingAdapter()
        wrapped = with_call_tracing(adapter)
        with caplog.at_level(logging.INFO, logger="carrierkit"):
            await wrapped.invoke(
                "create_shipment",
                CreateShipmentRequest(parcels=parcels, credentials=credentials),
                context,
            )
        assert adapter.operations == ["create_shipment"]
        assert any("completed in" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_invoke_names_the_operation(self, context, parcels, credentials):
        adapter = RecordingAdapter()
        assert context.operation_name is None
        await with_call_tracing(adapter).invoke(
            "create_shipment",
            CreateShipmentRequest(parcels=parcels, credentials=credentials),
            context,
        )
        assert adapter.calls[0][2] == "create_shipment"


def test_proxy_base_requires_wrap():
    with pytest.raises(TypeError):
        _AdapterProxy(RecordingAdapter())
