"""Synthetic valuation-site screens wired together for workflow tests."""
from __future__ import annotations

from autovalue.config import WorkflowConfig
from fakes import FakeElement, FakePage, FakeScreen, button, dropdown, field_input, link, option

LANDING = WorkflowConfig().landing_url
DETAILS = "https://www.webuyanycarusa.com/vehicledetails"
CONDITION = "https://www.webuyanycarusa.com/vehiclecondition"
RESULT = "https://www.webuyanycarusa.com/valuation"


def vin_landing(next_url: str = DETAILS) -> FakeScreen:
    return FakeScreen(
        url=LANDING,
        selectors={'input[name="vin"]': [field_input(name="vin")]},
        extras=[link("Enter VIN"), button("Value My Car", navigate_to=next_url)],
    )


def make_model_landing(next_url: str = DETAILS) -> FakeScreen:
    year = dropdown([("", "Select year"), ("2021", "2021"), ("2020", "2020")], name="year")
    make = dropdown([("", "Select make")], name="make")
    model = dropdown([("", "Select model")], name="model")
    make.enabled = False
    model.enabled = False

    def year_chosen(page: FakePage, value: str) -> None:
        make.enabled = True
        make.options = [option("", "Select make"), option("tesla", "Tesla"), option("toyota", "Toyota")]

    def make_chosen(page: FakePage, value: str) -> None:
        model.enabled = True
        model.options = [option("", "Select model"), option("camry-hybrid", "Camry Hybrid"), option("camry", "Camry")]

    year.on_select = year_chosen
    make.on_select = make_chosen
    return FakeScreen(
        url=LANDING,
        selectors={
            'select[name*="year" i]': [year],
            'select[name*="make" i]': [make],
            'select[name*="model" i]': [model],
        },
        extras=[link("Enter VIN"), button("Value My Car", navigate_to=next_url)],
    )


def details_screen() -> FakeScreen:
    transmission = dropdown([("", "Transmission"), ("auto", "Automatic"), ("manual", "Manual")])
    colour = dropdown([("", "Colour"), ("", "Blue"), ("x", "Please choose a colour"), ("red", "Red")])
    body = dropdown([("", "Body"), ("sel", "Select one"), ("opt", "CHOOSE STYLE"), ("sedan", "Sedan")])
    return FakeScreen(
        url=DETAILS,
        selectors={'button:has-text("Continue to Step 3")': [button("Continue to Step 3", navigate_to=CONDITION)]},
        extras=[transmission, colour, body],
    )


def condition_screen(with_zip: bool = True, with_email: bool = True) -> FakeScreen:
    selectors: dict[str, list[FakeElement]] = {}
    extras = [
        field_input(placeholder="Enter Vehicle Mileage", name="mileage"),
        button("See Your Valuation", navigate_to=RESULT),
    ]
    if with_zip:
        extras.append(field_input(placeholder="Enter ZIP Code"))
    if with_email:
        selectors['input[type="email"]'] = [field_input(type="email")]
    return FakeScreen(url=CONDITION, selectors=selectors, extras=extras)


def result_screen(price_text: str = "Your car is worth $12,345.00 today") -> FakeScreen:
    return FakeScreen(
        url=RESULT,
        selectors={'[class*="price" i]': [FakeElement(tag="div", text=price_text)]},
        body=f"Great news! {price_text}. Offer valid for 7 days.",
    )


def vin_site() -> FakePage:
    return FakePage([vin_landing(), details_screen(), condition_screen(), result_screen()])


def make_model_site() -> FakePage:
    return FakePage([make_model_landing(), details_screen(), condition_screen(), result_screen()])
