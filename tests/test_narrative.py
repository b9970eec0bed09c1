from convergekit.core.modes import Backend
from convergekit.report.narrative import (
    CHANGES_APPLIED_MESSAGE,
    CLUSTER_STARTING_MESSAGE,
    MUST_CONFIRM_MESSAGE,
    NO_CHANGES_MESSAGE,
    ROLLING_UPDATE_REMINDER,
    NarrativeContext,
    cloudformation_stack_name,
    dry_run_message,
    render_outcome,
)


def _ctx(**overrides: object) -> NarrativeContext:
    fields = {
        "first_run": True,
        "backend": Backend.DIRECT,
        "cluster_name": "demo.example.com",
        "out_dir": "out",
        "master_public_name": "api.demo.example.com",
        "bastion_present": False,
        "bastion_public_name": None,
    }
    fields.update(overrides)
    return NarrativeContext(**fields)  # type: ignore[arg-type]


def test_dry_run_messages() -> None:
    assert dry_run_message(True) == MUST_CONFIRM_MESSAGE == "Must specify --yes to apply changes"
    assert dry_run_message(False) == NO_CHANGES_MESSAGE == "No changes need to be applied"


def test_direct_first_run_with_named_bastion() -> None:
    text = render_outcome(_ctx(bastion_present=True, bastion_public_name="bastion.demo.example.com"))
    assert CLUSTER_STARTING_MESSAGE in text
    assert "Suggestions:" in text
    assert "ssh -A -i ~/.ssh/id_rsa ubuntu@bastion.demo.example.com" in text
    assert "ssh to the master" not in text
    assert ROLLING_UPDATE_REMINDER not in text


def test_direct_first_run_with_unnamed_bastion_prompts_configuration() -> None:
    text = render_outcome(_ctx(bastion_present=True))
    assert "you probably want to configure a bastionPublicName" in text
    assert "ssh to the master" not in text


def test_direct_first_run_without_bastion_suggests_master() -> None:
    text = render_outcome(_ctx())
    assert "ssh to the master: ssh -i ~/.ssh/id_rsa ubuntu@api.demo.example.com" in text
    assert "bastion" not in text


def test_direct_not_first_run_reminds_rolling_update() -> None:
    text = render_outcome(_ctx(first_run=False))
    assert text == f"\n{CHANGES_APPLIED_MESSAGE}\n\n\n{ROLLING_UPDATE_REMINDER}\n\n"
    assert "Suggestions:" not in text


def test_terraform_first_run_lists_commands() -> None:
    text = render_outcome(_ctx(backend=Backend.TERRAFORM, out_dir="out/terraform"))
    assert text.startswith("\nTerraform output has been placed into out/terraform\n")
    assert "   cd out/terraform\n   terraform plan\n   terraform apply\n" in text
    assert CLUSTER_STARTING_MESSAGE not in text


def test_terraform_not_first_run_only_reports_location() -> None:
    text = render_outcome(_ctx(backend=Backend.TERRAFORM, out_dir="tf", first_run=False))
    assert "Terraform output has been placed into tf" in text
    assert "terraform apply" not in text
    assert ROLLING_UPDATE_REMINDER in text


def test_cloudformation_first_run_derives_stack_name() -> None:
    text = render_outcome(_ctx(backend=Backend.CLOUDFORMATION, out_dir="out/cloudformation"))
    assert "Cloudformation output has been placed into out/cloudformation" in text
    assert (
        "aws cloudformation create-stack --capabilities CAPABILITY_NAMED_IAM "
        "--stack-name kubernetes-demo-example-com "
        "--template-body file://out/cloudformation/kubernetes.json"
    ) in text


def test_stack_name_replaces_every_dot() -> None:
    assert cloudformation_stack_name("a.b.c") == "kubernetes-a-b-c"


def test_render_is_pure() -> None:
    ctx = _ctx(backend=Backend.TERRAFORM)
    assert render_outcome(ctx) == render_outcome(ctx)
