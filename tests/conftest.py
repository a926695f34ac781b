import pytest

from coilsales.models.client import Client
from coilsales.services.workflow_service import WorkflowService


@pytest.fixture
def workflow(tmp_path):
    return WorkflowService(tmp_path)


@pytest.fixture
def client(workflow):
    return workflow.create_client(Client(name="Aciers du Centre", email="compta@aciers.example"))


@pytest.fixture
def other_client(workflow):
    return workflow.create_client(Client(name="Tôlerie Martin"))
