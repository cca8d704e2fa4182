"""
Example BHV2 content modeled on a MonkeyLogic session file.

Builds an MLConfig struct followed by Trial1..TrialN structs. Each trial
holds small metadata fields (Trial, Block, Condition, TrialError) and
bulky ones (AnalogData, ObjectStatusRecord), which is the layout that
selective decoding is meant for.
"""
from typing import Dict, List, Sequence

import numpy as np

from bhv2.codec import write_variables
from bhv2.dtypes import ElementKind, numpy_dtype_of
from bhv2.model import CellValue, CharValue, FieldSlot, NamedVariable, NumericValue, StructValue, Value


def double_scalar(x: float) -> NumericValue:
    return NumericValue(kind=ElementKind.F64, shape=(1, 1), data=[x])


def numeric_array(values: Sequence, kind: ElementKind = ElementKind.F64, shape=None) -> NumericValue:
    """Numeric array from values in wire order; defaults to a 1xN row."""
    data = np.asarray(values, dtype=numpy_dtype_of(kind)).reshape(-1)
    if shape is None:
        shape = (1, data.size)
    return NumericValue(kind=kind, shape=tuple(shape), data=data)


def char_value(text: str) -> CharValue:
    return CharValue(shape=(1, len(text)), text=text)


def struct_value(fields: Dict[str, Value]) -> StructValue:
    """1x1 struct with fields in insertion order."""
    return struct_array([fields])


def struct_array(elements: List[Dict[str, Value]]) -> StructValue:
    """1xN struct array. All elements must have the same field names."""
    if not elements:
        return StructValue(shape=(0, 0))
    names = list(elements[0])
    slots = []
    for element in elements:
        if list(element) != names:
            raise ValueError("All struct elements must have the same fields in the same order")
        slots.extend(FieldSlot(name, element[name]) for name in names)
    return StructValue(shape=(1, len(elements)), field_width=len(names), slots=slots)


def cell_value(items: List[Value]) -> CellValue:
    return CellValue(shape=(1, len(items)), cells=list(items), names=[""] * len(items))


def build_example_trial(trial: int, condition: int, block: int, error: int,
                        samples: int = 100) -> StructValue:
    analog = struct_value({
        "Eye": numeric_array(0.01 * np.arange(2 * samples), shape=(samples, 2)),
        "Joystick": numeric_array([], shape=(0, 0)),
        "PhotoDiode": numeric_array(np.arange(samples) % 2, shape=(samples, 1)),
    })
    status = cell_value([
        numeric_array([1, 0, 1], kind=ElementKind.U8),
        numeric_array([0, 1, 1], kind=ElementKind.U8),
    ])
    return struct_value({
        "Trial": double_scalar(trial),
        "Block": double_scalar(block),
        "Condition": double_scalar(condition),
        "TrialError": double_scalar(error),
        "AbsoluteTrialStartTime": double_scalar(1000.0 * trial),
        "AnalogData": analog,
        "ObjectStatusRecord": status,
        "UserVars": struct_value({"Note": char_value(f"trial {trial}")}),
    })


def build_example_variables(trial_count: int = 3, samples: int = 100) -> List[NamedVariable]:
    variables = [
        NamedVariable("MLConfig", struct_value({
            "ExperimentName": char_value("Example Task"),
            "SubjectName": char_value("Monkey"),
            "ScreenSize": numeric_array([1920.0, 1080.0]),
            "Debug": NumericValue(kind=ElementKind.BOOL, shape=(1, 1), data=(False,)),
        })),
    ]
    for i in range(1, trial_count + 1):
        trial = build_example_trial(
            trial=i,
            condition=(i - 1) % 4 + 1,
            block=(i - 1) // 4 + 1,
            error=0 if i % 3 else 6,
            samples=samples,
        )
        variables.append(NamedVariable(f"Trial{i}", trial))
    return variables


def build_example_trial_file(filepath: str, trial_count: int = 3, samples: int = 100) -> List[NamedVariable]:
    """Write an example file and return the variables written."""
    variables = build_example_variables(trial_count=trial_count, samples=samples)
    write_variables(filepath, variables)
    return variables


__all__ = [
    "double_scalar",
    "numeric_array",
    "char_value",
    "struct_value",
    "struct_array",
    "cell_value",
    "build_example_trial",
    "build_example_variables",
    "build_example_trial_file",
]
