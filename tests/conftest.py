"""Shared fixtures: isolated settings, a mock transport and a ready draft."""

from unittest.mock import MagicMock

import pytest

from ezcompose import EzMail, MailConfig, MailSettings


@pytest.fixture
def settings():
    return MailSettings(_env_file=None)


@pytest.fixture
def transport():
    transport = MagicMock()
    transport.send.return_value = True
    return transport


@pytest.fixture
def mail(settings, transport):
    return EzMail(MailConfig(), transport=transport, settings=settings)
