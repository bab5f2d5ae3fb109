"""
Schema-validated (de)serialization of the records the host persists or replays.

Persisted field names are camelCase and fixed:
    StrideModel:        alpha, beta, rSquared, createdAt, sampleCount
    CalibrationRecord:  totalSteps, averageCadence, elapsedSeconds, measuredAt

Decoding failures raise MissingFieldError or MalformedFieldError naming the field,
never a silent None.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import MIN_FIT_RECORDS
from .errors import MalformedFieldError, MissingFieldError
from .models import CalibrationRecord, GPSFix, SensorSample, StrideModel


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)


class StrideModelSchema(_Schema):
    alpha: float = Field(allow_inf_nan=False)
    beta: float = Field(allow_inf_nan=False)
    r_squared: float = Field(alias='rSquared', allow_inf_nan=False)
    created_at: datetime = Field(alias='createdAt')
    sample_count: int = Field(alias='sampleCount', ge=MIN_FIT_RECORDS)


class CalibrationRecordSchema(_Schema):
    total_steps: int = Field(alias='totalSteps', gt=0)
    average_cadence: float = Field(alias='averageCadence', gt=0, allow_inf_nan=False)
    elapsed_seconds: float = Field(alias='elapsedSeconds', gt=0, allow_inf_nan=False)
    measured_at: datetime = Field(alias='measuredAt')


class SensorSampleSchema(_Schema):
    accel_x: float = Field(alias='accelX')
    accel_y: float = Field(alias='accelY')
    accel_z: float = Field(alias='accelZ')
    gyro_x: float = Field(alias='gyroX')
    gyro_y: float = Field(alias='gyroY')
    gyro_z: float = Field(alias='gyroZ')
    timestamp: float = Field(allow_inf_nan=False)
    heart_rate: Optional[float] = Field(default=None, alias='heartRate')


class GPSFixSchema(_Schema):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    timestamp: float = Field(allow_inf_nan=False)
    horizontal_accuracy: float = Field(default=-1.0, alias='horizontalAccuracy')
    altitude: float = 0.0
    vertical_accuracy: float = Field(default=-1.0, alias='verticalAccuracy')
    speed: float = -1.0
    course: float = -1.0


def _validate(schema, record_type, payload):
    if not isinstance(payload, dict):
        raise MalformedFieldError(record_type, '<root>', f"expected an object, got {type(payload).__name__}")
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = str(error['loc'][0]) if error['loc'] else '<root>'
        if error['type'] == 'missing':
            raise MissingFieldError(record_type, field) from exc
        raise MalformedFieldError(record_type, field, error['msg']) from exc


def _aware(value):
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def decode_stride_model(payload):
    parsed = _validate(StrideModelSchema, 'StrideModel', payload)
    return StrideModel(
        alpha=parsed.alpha,
        beta=parsed.beta,
        r_squared=parsed.r_squared,
        sample_count=parsed.sample_count,
        created_at=_aware(parsed.created_at),
    )


def encode_stride_model(model):
    return StrideModelSchema(
        alpha=model.alpha,
        beta=model.beta,
        r_squared=model.r_squared,
        created_at=model.created_at,
        sample_count=model.sample_count,
    ).model_dump(by_alias=True, mode='json')


def decode_calibration_record(payload):
    parsed = _validate(CalibrationRecordSchema, 'CalibrationRecord', payload)
    return CalibrationRecord(
        total_steps=parsed.total_steps,
        average_cadence=parsed.average_cadence,
        elapsed_seconds=parsed.elapsed_seconds,
        measured_at=_aware(parsed.measured_at),
    )


def encode_calibration_record(record):
    return CalibrationRecordSchema(
        total_steps=record.total_steps,
        average_cadence=record.average_cadence,
        elapsed_seconds=record.elapsed_seconds,
        measured_at=record.measured_at,
    ).model_dump(by_alias=True, mode='json')


def decode_sensor_sample(payload):
    parsed = _validate(SensorSampleSchema, 'SensorSample', payload)
    return SensorSample(**parsed.model_dump())


def decode_gps_fix(payload):
    parsed = _validate(GPSFixSchema, 'GPSFix', payload)
    return GPSFix(**parsed.model_dump())
