import uvicorn


def main() -> None:
    uvicorn.run("ugc_rewards_api.app:create_app", factory=True, reload=True)


if __name__ == "__main__":
    main()
