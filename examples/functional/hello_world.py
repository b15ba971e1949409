"""
HelloWorld approval example

Starts the HelloWorld workflow by its registered name without waiting for it
to finish, checks its state, approves it after three seconds and prints the
greeting.

Settings come from the environment (see approvalflow.config), e.g.

    APPROVALFLOW_STORAGE_PATH=./approvalflow_data python examples/functional/hello_world.py
"""

import asyncio

import approvalflow.greeting  # noqa: F401  registers HelloWorldWorkflow
from approvalflow import HostSettings, WorkflowHost

WORKFLOW_ID = "HelloWorldWorkflowID"


async def main():
    """Run the HelloWorld approval example."""
    settings = HostSettings.from_env()
    settings.configure_logging()

    print("\n" + "=" * 60)
    print("approvalflow - HelloWorld Approval Example")
    print("=" * 60 + "\n")

    async with WorkflowHost(settings=settings) as host:
        # Start by name and DO NOT wait for the workflow to complete
        handle = await host.start("HelloWorldWorkflow", "World", instance_id=WORKFLOW_ID)

        print(f"The state of the workflow is {handle.query('currentState')}")

        # Wait a bit before signaling approval
        await asyncio.sleep(3)

        await handle.signal("approve")
        print(f"After approval, the state is {handle.query('currentState')}")

        greeting = await handle.result()
        print(f"\nWorkflowID is {handle.id} and the greeting is {greeting}")
        print(f"Final state: {handle.query('currentState')}\n")


if __name__ == "__main__":
    asyncio.run(main())
