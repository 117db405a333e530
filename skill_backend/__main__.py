from skill_backend.main import main


raise SystemExit(main())
