"""
Approval timeout example

Starts the HelloWorld workflow with a two second approval window and never
approves it. The instance times out and the failure is read back from the
instance record.
"""

import asyncio

from approvalflow import ApprovalTimeout, HostSettings, WorkflowHost, configure_logging
from approvalflow.greeting import HelloWorldWorkflow


async def main():
    """Run the approval timeout example."""
    configure_logging(level="WARNING", show_context=False)

    print("\n" + "=" * 60)
    print("approvalflow - Approval Timeout Example")
    print("=" * 60 + "\n")

    async with WorkflowHost(settings=HostSettings.from_env()) as host:
        handle = await host.start(
            HelloWorldWorkflow,
            "World",
            instance_id="HelloWorldTimeoutID",
            workflow_kwargs={"approval_window": "2s"},
        )

        print(f"State: {handle.query('currentState')}")
        print("Not approving; waiting for the window to elapse...")

        try:
            await handle.result()
        except ApprovalTimeout as e:
            print(f"\nWorkflow failed: {e}")

        record = await handle.describe()
        print(f"State: {handle.query('currentState')}")
        print(f"Record status: {record.status.value} ({record.error_type})\n")

        for event in await handle.events():
            print(f"  {event.sequence:>2}  {event.type.value}")
        print()


if __name__ == "__main__":
    asyncio.run(main())
