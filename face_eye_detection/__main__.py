from face_eye_detection.ui.preview import main

if __name__ == "__main__":
    main()
