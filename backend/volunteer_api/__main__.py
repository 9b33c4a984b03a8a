from volunteer_api.server import main

main()
